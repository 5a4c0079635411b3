"""
Configuration settings for the newsletter subscription service
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Required for the pipeline; validated lazily by the components that need them
    secret_key: str = ""
    base_url: str = ""
    database_url: str = ""
    redis_url: str = ""
    redis_token: str = ""
    resend_api_key: str = ""

    # Email
    email_api_url: str = "https://api.resend.com/emails"
    email_from: str = "Newsletter <newsletter@example.com>"
    email_timeout_seconds: float = 10.0
    newsletter_name: str = "DeepIntoDev"
    newsletter_page_url: str = ""

    # Tokens
    verification_token_expire_minutes: int = 60
    single_use_tokens: bool = False

    # Rate limiting
    rate_limit_policy: Literal["advisory", "enforced"] = "advisory"
    rate_limit_require_client_ip: bool = False
    subscribe_rate_limit: int = 3
    subscribe_rate_limit_window_seconds: int = 300
    subscribe_rate_limit_block_seconds: int = 1800
    verify_rate_limit: int = 5
    verify_rate_limit_window_seconds: int = 300
    verify_rate_limit_block_seconds: int = 1800
    global_rate_limit: str = "1000/hour"

    kv_connect_timeout_seconds: float = 5.0
    environment: str = "development"
    https_enabled: bool = False

    @field_validator("secret_key")
    @classmethod
    def validate_secret_strength(cls, v: str) -> str:
        """Enforce minimum 32-character signing secrets when one is configured"""
        if v and len(v) < 32:
            raise ValueError(
                f"secret_key must be at least 32 characters "
                f"(current: {len(v)}). Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator("base_url", "newsletter_page_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("verification_token_expire_minutes")
    @classmethod
    def validate_token_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("verification_token_expire_minutes must be positive")
        return v

    @property
    def rate_limit_enforced(self) -> bool:
        return self.rate_limit_policy == "enforced"

    @property
    def resolved_newsletter_page_url(self) -> str:
        """Where "request a new link" buttons point."""
        if self.newsletter_page_url:
            return self.newsletter_page_url
        if self.base_url:
            return f"{self.base_url}/newsletter"
        return "/newsletter"

    def missing_required(self) -> list:
        required = {
            "SECRET_KEY": self.secret_key,
            "BASE_URL": self.base_url,
            "DATABASE_URL": self.database_url,
            "REDIS_URL": self.redis_url,
            "RESEND_API_KEY": self.resend_api_key,
        }
        return [name for name, value in required.items() if not value]

    @classmethod
    def load_and_validate(cls) -> "Settings":
        """Load settings and report every missing required value"""
        instance = cls()

        for name in instance.missing_required():
            logger.error(f"{name} is not configured - the subscription pipeline will fail until it is set")

        logger.info(
            f"Settings loaded: environment={instance.environment}, "
            f"rate_limit_policy={instance.rate_limit_policy}, "
            f"token_ttl_minutes={instance.verification_token_expire_minutes}, "
            f"email_configured={bool(instance.resend_api_key)}"
        )
        return instance


@lru_cache()
def get_settings() -> Settings:
    return Settings.load_and_validate()
