"""
Application context: every long-lived collaborator, built once per process.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings
from .database.core import create_engine_from_url, create_session_factory
from .services.kv_client import KeyValueClientFactory
from .services.notification_service import NotificationService
from .services.subscriber_store import SubscriberStore
from .services.subscription_service import SubscriptionService
from .services.token_service import VerificationTokenService
from .services.verification_service import VerificationService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    kv_factory: KeyValueClientFactory
    store: SubscriberStore
    token_service: VerificationTokenService
    notifier: NotificationService
    subscriptions: SubscriptionService
    verifications: VerificationService
    engine: Optional[AsyncEngine] = None
    http_client: Optional[httpx.AsyncClient] = None

    async def close(self) -> None:
        await self.kv_factory.close()
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def assemble_context(
    settings: Settings,
    kv_factory: KeyValueClientFactory,
    store: SubscriberStore,
    notifier: NotificationService,
    engine: Optional[AsyncEngine] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppContext:
    """Wire the orchestrators from already-built collaborators."""
    token_service = VerificationTokenService(
        settings.secret_key,
        settings.verification_token_expire_minutes,
    )
    return AppContext(
        settings=settings,
        kv_factory=kv_factory,
        store=store,
        token_service=token_service,
        notifier=notifier,
        subscriptions=SubscriptionService(settings, kv_factory, store, token_service, notifier),
        verifications=VerificationService(settings, kv_factory, store, token_service),
        engine=engine,
        http_client=http_client,
    )


def build_context(settings: Settings) -> AppContext:
    """Build the production context from settings."""
    engine = create_engine_from_url(settings.database_url, settings.kv_connect_timeout_seconds)
    http_client = httpx.AsyncClient(timeout=settings.email_timeout_seconds)

    context = assemble_context(
        settings,
        kv_factory=KeyValueClientFactory(settings),
        store=SubscriberStore(create_session_factory(engine)),
        notifier=NotificationService(settings, http_client=http_client),
        engine=engine,
        http_client=http_client,
    )
    logger.info("Application context initialized")
    return context
