"""
Best-effort client address extraction.

Forwarded headers are set by whatever proxy sits in front of the service and
can be spoofed by clients when no proxy strips them. The derived address is a
rate-limiting key, not an authenticated identity.
"""

from typing import Optional

from starlette.requests import Request


def get_client_ip(request: Request) -> Optional[str]:
    """
    Return the originating client address for a request.

    Order: first entry of X-Forwarded-For, then X-Real-IP, then the socket
    peer. Returns None when none of them is usable.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        return request.client.host
    return None


def get_rate_limit_key(request: Request) -> str:
    """slowapi key function built on the same extraction."""
    return get_client_ip(request) or "unknown"
