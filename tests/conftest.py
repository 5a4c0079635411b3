"""
Pytest configuration and fixtures for the newsletter service tests.

Redis and the subscriber database are replaced by the in-memory doubles in
fakes.py; the email API is replaced by an httpx.MockTransport so the real
NotificationService code runs.
"""

import os

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment before the app module builds its settings
os.environ["SECRET_KEY"] = "test-signing-key-0123456789abcdef0123456789abcdef"
os.environ["BASE_URL"] = "https://blog.example.com"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ.pop("REDIS_URL", None)
os.environ.pop("DATABASE_URL", None)

from newsletter.context import assemble_context
from newsletter.main import create_app
from newsletter.services.notification_service import NotificationService

from fakes import EmailOutbox, FakeKeyValueFactory, FakeRedis, InMemorySubscriberStore, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def kv_factory(fake_redis):
    return FakeKeyValueFactory(fake_redis)


@pytest.fixture
def subscriber_store():
    return InMemorySubscriberStore()


@pytest.fixture
def outbox():
    return EmailOutbox()


@pytest.fixture
def email_client(outbox):
    return httpx.AsyncClient(transport=httpx.MockTransport(outbox.handler))


@pytest.fixture
def notifier(settings, email_client):
    return NotificationService(settings, http_client=email_client)


@pytest.fixture
def app_context(settings, kv_factory, subscriber_store, notifier):
    return assemble_context(settings, kv_factory=kv_factory, store=subscriber_store, notifier=notifier)


@pytest.fixture
def client(app_context):
    """Test client running the app lifespan with in-memory collaborators."""
    app = create_app(context=app_context)
    with TestClient(app) as test_client:
        yield test_client
