"""
Persistence of verified subscribers.

Sessions are acquired per call, or shared by the caller through ``session()``,
and always closed on exit. The unique constraint on ``subscribers.email`` is
the authority on duplicates; ``exists`` is only a pre-check.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.subscriber import Subscriber
from ..utils.errors import AlreadySubscribed, SubscriberStoreUnavailable

logger = logging.getLogger(__name__)


class SubscriberStore:

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open one session for a sequence of store calls."""
        async with self._session_factory() as session:
            yield session

    async def exists(self, email: str, session: Optional[AsyncSession] = None) -> bool:
        if session is None:
            async with self.session() as own_session:
                return await self._exists(email, own_session)
        return await self._exists(email, session)

    async def insert(self, email: str, session: Optional[AsyncSession] = None) -> Subscriber:
        """
        Persist ``email`` as a verified subscriber.

        Raises:
            AlreadySubscribed: A row for this email already exists
            SubscriberStoreUnavailable: Any other database failure
        """
        if session is None:
            async with self.session() as own_session:
                return await self._insert(email, own_session)
        return await self._insert(email, session)

    async def _exists(self, email: str, session: AsyncSession) -> bool:
        try:
            result = await session.execute(
                select(Subscriber.id).where(Subscriber.email == email)
            )
        except SQLAlchemyError as e:
            logger.error(f"Subscriber lookup failed: {e}", exc_info=True)
            raise SubscriberStoreUnavailable(f"Subscriber lookup failed: {e}") from e
        return result.scalar_one_or_none() is not None

    async def _insert(self, email: str, session: AsyncSession) -> Subscriber:
        subscriber = Subscriber(email=email, verified=True)
        session.add(subscriber)
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            logger.info(f"Subscriber already exists: {email}")
            raise AlreadySubscribed(email) from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Subscriber insert failed: {e}", exc_info=True)
            raise SubscriberStoreUnavailable(f"Subscriber insert failed: {e}") from e

        logger.info(f"Subscriber persisted: {email}")
        return subscriber
