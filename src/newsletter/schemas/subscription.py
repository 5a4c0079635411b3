"""
Request, response and token claim schemas for subscriptions
"""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field

MAX_EMAIL_LENGTH = 255


class SubscribeRequest(BaseModel):
    email: EmailStr = Field(..., description="Address to subscribe")


class SubscribeResult(BaseModel):
    """Result consumed by the subscription form; ``status`` is the real signal."""
    message: str
    status: Literal["success", "error", "rate_limited"]


class VerificationClaims(BaseModel):
    email: str = Field(..., description="Address bound to the token")
    jti: str = Field(..., description="Random nonce identifying the token")
