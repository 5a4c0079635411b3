"""
Signed verification tokens for double opt-in.

A token is an HS256 JWT binding an email address to a random nonce with an
expiry. Nothing is stored server-side.
"""

import secrets
from datetime import datetime, timedelta, timezone

import jwt

from ..schemas.subscription import VerificationClaims
from ..utils.errors import ConfigurationError, TokenExpired, TokenInvalid

ALGORITHM = "HS256"
ALLOWED_JWT_ALGORITHMS = (ALGORITHM,)


def issue_token(email: str, secret: str, ttl: timedelta) -> str:
    """
    Sign a verification token for ``email``.

    Args:
        email: Address being verified
        secret: Server-held symmetric signing secret
        ttl: Token lifetime

    Returns:
        Compact JWT string
    """
    if not secret:
        raise ConfigurationError("SECRET_KEY is not defined")

    now = datetime.now(timezone.utc)
    payload = {
        "email": email,
        "jti": secrets.token_hex(16),
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> VerificationClaims:
    """
    Check signature and expiry and return the bound claims.

    Raises:
        TokenExpired: Signature is valid but the token is past its expiry
        TokenInvalid: Anything else wrong with the token
    """
    if not secret:
        raise ConfigurationError("SECRET_KEY is not defined")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=list(ALLOWED_JWT_ALGORITHMS),
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired("Verification token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Verification token invalid: {e}") from e

    email = payload.get("email")
    jti = payload.get("jti")
    if not isinstance(email, str) or not email or not isinstance(jti, str) or not jti:
        raise TokenInvalid("Verification token missing required claims")

    return VerificationClaims(email=email, jti=jti)


class VerificationTokenService:
    """Issues and verifies tokens with the configured secret and lifetime."""

    def __init__(self, secret_key: str, expiration_minutes: int = 60):
        self.secret_key = secret_key
        self.expiration_minutes = expiration_minutes

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.expiration_minutes)

    def issue(self, email: str) -> str:
        return issue_token(email, self.secret_key, self.ttl)

    def verify(self, token: str) -> VerificationClaims:
        return verify_token(token, self.secret_key)
