"""
Database core functionality for async SQLAlchemy
"""

import re

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from ..utils.errors import ConfigurationError

# Create Base class for models
Base = declarative_base()


def to_async_url(database_url: str) -> str:
    """Convert a plain PostgreSQL URL to its asyncpg form and drop sslmode."""
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    # asyncpg handles SSL through connect_args, not the URL
    if "?sslmode=" in database_url or "&sslmode=" in database_url:
        database_url = re.sub(r'[?&]sslmode=\w+', '', database_url)
    return database_url


def create_engine_from_url(database_url: str, connect_timeout: float = 5.0) -> AsyncEngine:
    if not database_url:
        raise ConfigurationError("DATABASE_URL is not configured")

    url = to_async_url(database_url)
    connect_args = {}
    if url.startswith("postgresql+asyncpg://"):
        connect_args["timeout"] = connect_timeout
        if "neon" in url or ".aws" in url:
            connect_args["ssl"] = "require"

    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False,
        connect_args=connect_args
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
