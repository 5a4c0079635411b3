"""
Tests for the verification endpoint logic.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from newsletter.services.token_service import VerificationTokenService, issue_token
from newsletter.services.verification_service import (
    CONSUMED_PREFIX,
    VerificationOutcome,
    VerificationService,
)
from newsletter.utils.errors import KeyValueStoreUnavailable

from fakes import TEST_SECRET, FakeKeyValueFactory, FakeRedis, InMemorySubscriberStore, make_settings

OTHER_SECRET = "another-signing-key-fedcba9876543210fedcba9876543210"


def build_service(settings=None, kv_factory=None, store=None):
    settings = settings or make_settings()
    return VerificationService(
        settings,
        kv_factory or FakeKeyValueFactory(),
        store or InMemorySubscriberStore(),
        VerificationTokenService(settings.secret_key, settings.verification_token_expire_minutes),
    )


def valid_token(email="a@example.com", ttl=timedelta(minutes=60), secret=TEST_SECRET):
    return issue_token(email, secret, ttl)


class TestVerificationOutcome:

    @pytest.mark.parametrize("outcome,status", [
        (VerificationOutcome.VERIFIED, 200),
        (VerificationOutcome.ALREADY_SUBSCRIBED, 200),
        (VerificationOutcome.TOKEN_MISSING, 400),
        (VerificationOutcome.TOKEN_EXPIRED, 400),
        (VerificationOutcome.TOKEN_INVALID, 400),
        (VerificationOutcome.RATE_LIMITED, 429),
        (VerificationOutcome.FAILED, 400),
    ])
    def test_status_codes(self, outcome, status):
        assert outcome.status_code == status


class TestVerificationService:

    @pytest.fixture
    def store(self):
        return InMemorySubscriberStore()

    @pytest.fixture
    def kv(self):
        return FakeKeyValueFactory(FakeRedis())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "   "])
    async def test_missing_token_touches_nothing(self, store, kv, token):
        service = build_service(kv_factory=kv, store=store)

        assert await service.verify(token) is VerificationOutcome.TOKEN_MISSING
        assert store.total_calls == 0
        assert kv.get_client_calls == 0

    @pytest.mark.asyncio
    async def test_valid_token_persists_subscriber(self, store, kv):
        service = build_service(kv_factory=kv, store=store)

        assert await service.verify(valid_token()) is VerificationOutcome.VERIFIED
        assert store.records == {"a@example.com": {"email": "a@example.com", "verified": True}}
        assert kv.redis.data["ratelimit:verify:a@example.com"] == "1"

    @pytest.mark.asyncio
    async def test_second_visit_is_idempotent(self, store, kv):
        service = build_service(kv_factory=kv, store=store)
        token = valid_token()

        assert await service.verify(token) is VerificationOutcome.VERIFIED
        assert await service.verify(token) is VerificationOutcome.ALREADY_SUBSCRIBED
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_expired_token(self, store):
        service = build_service(store=store)

        outcome = await service.verify(valid_token(ttl=timedelta(seconds=-1)))

        assert outcome is VerificationOutcome.TOKEN_EXPIRED
        assert store.total_calls == 0

    @pytest.mark.asyncio
    async def test_foreign_token_is_invalid(self, store, kv):
        service = build_service(kv_factory=kv, store=store)

        outcome = await service.verify(valid_token(secret=OTHER_SECRET))

        assert outcome is VerificationOutcome.TOKEN_INVALID
        assert store.total_calls == 0
        assert kv.get_client_calls == 0

    @pytest.mark.asyncio
    async def test_sixth_attempt_is_rate_limited(self, store, kv):
        service = build_service(kv_factory=kv, store=store)
        token = valid_token()

        for _ in range(5):
            assert await service.verify(token) in (
                VerificationOutcome.VERIFIED, VerificationOutcome.ALREADY_SUBSCRIBED
            )

        assert await service.verify(token) is VerificationOutcome.RATE_LIMITED
        assert await kv.redis.exists("ratelimit:verify:a@example.com:blocked") == 1

    @pytest.mark.asyncio
    async def test_advisory_policy_persists_without_limiter(self, store):
        kv = FakeKeyValueFactory(error=KeyValueStoreUnavailable("down"))
        service = build_service(kv_factory=kv, store=store)

        assert await service.verify(valid_token()) is VerificationOutcome.VERIFIED
        assert "a@example.com" in store.records

    @pytest.mark.asyncio
    async def test_enforced_policy_fails(self, store):
        kv = FakeKeyValueFactory(error=KeyValueStoreUnavailable("down"))
        service = build_service(
            settings=make_settings(rate_limit_policy="enforced"), kv_factory=kv, store=store
        )

        assert await service.verify(valid_token()) is VerificationOutcome.FAILED
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_store_failure_is_generic(self, store, kv):
        store.insert = AsyncMock(side_effect=RuntimeError("connection reset"))
        service = build_service(kv_factory=kv, store=store)

        assert await service.verify(valid_token()) is VerificationOutcome.FAILED


class TestSingleUseTokens:

    @pytest.fixture
    def settings(self):
        return make_settings(single_use_tokens=True)

    @pytest.mark.asyncio
    async def test_consumed_marker_written_with_token_ttl(self, settings):
        kv = FakeKeyValueFactory(FakeRedis())
        service = build_service(settings=settings, kv_factory=kv)
        token = valid_token()
        jti = service.token_service.verify(token).jti

        assert await service.verify(token) is VerificationOutcome.VERIFIED
        assert kv.redis.data[f"{CONSUMED_PREFIX}{jti}"] == "1"
        assert kv.redis.ttl(f"{CONSUMED_PREFIX}{jti}") == 60 * 60

    @pytest.mark.asyncio
    async def test_replay_skips_store_and_limiter(self, settings):
        kv = FakeKeyValueFactory(FakeRedis())
        store = InMemorySubscriberStore()
        service = build_service(settings=settings, kv_factory=kv, store=store)
        token = valid_token()

        await service.verify(token)
        calls_before = store.insert_calls
        counter_before = kv.redis.data["ratelimit:verify:a@example.com"]

        assert await service.verify(token) is VerificationOutcome.ALREADY_SUBSCRIBED
        assert store.insert_calls == calls_before
        assert kv.redis.data["ratelimit:verify:a@example.com"] == counter_before

    @pytest.mark.asyncio
    async def test_replay_guard_is_advisory_when_store_down(self, settings):
        store = InMemorySubscriberStore()
        kv = FakeKeyValueFactory(error=KeyValueStoreUnavailable("down"))
        service = build_service(settings=settings, kv_factory=kv, store=store)

        assert await service.verify(valid_token()) is VerificationOutcome.VERIFIED
