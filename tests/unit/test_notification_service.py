"""
Tests for verification email delivery.
"""

import json

import httpx
import pytest

from newsletter.services.notification_service import NotificationService
from newsletter.utils.errors import ConfigurationError, EmailDeliveryFailed

from fakes import EmailOutbox, make_settings

LINK = "https://blog.example.com/api/verify?token=abc.def.ghi"


def _service(handler, **overrides):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NotificationService(make_settings(**overrides), http_client=client)


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_sends_verification_email(self):
        outbox = EmailOutbox()
        service = _service(outbox.handler, email_from="DeepIntoDev <news@example.com>")

        result = await service.send_verification_email("a@example.com", LINK)

        assert result == {"status": "sent", "to": "a@example.com", "id": "msg_1"}
        request = outbox.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == "Bearer re_test_key"

        message = json.loads(request.content)
        assert message["from"] == "DeepIntoDev <news@example.com>"
        assert message["to"] == ["a@example.com"]
        assert message["subject"] == "DeepIntoDev Newsletter - Email Verification"
        assert f'href="{LINK}"' in message["html"]
        assert "Verify Email" in message["html"]
        assert "Link expires in 60 minutes." in message["html"]

    @pytest.mark.asyncio
    async def test_expiry_copy_follows_token_ttl(self):
        outbox = EmailOutbox()
        service = _service(outbox.handler, verification_token_expire_minutes=180)

        await service.send_verification_email("a@example.com", LINK)

        assert "Link expires in 180 minutes." in outbox.messages[0]["html"]

    @pytest.mark.asyncio
    async def test_closing_line_names_newsletter(self):
        outbox = EmailOutbox()
        service = _service(outbox.handler, newsletter_name="Weekly Notes")

        await service.send_verification_email("a@example.com", LINK)

        assert (
            "Every ~one week, you'll get something good to read from Weekly Notes "
            "after completing your subscription."
        ) in outbox.messages[0]["html"]

    @pytest.mark.asyncio
    async def test_api_error_raises_generic_failure(self):
        outbox = EmailOutbox(status_code=500)
        service = _service(outbox.handler)

        with pytest.raises(EmailDeliveryFailed) as exc_info:
            await service.send_verification_email("a@example.com", LINK)

        assert "re_test_key" not in str(exc_info.value)
        assert str(exc_info.value) == "Verification email could not be sent"

    @pytest.mark.asyncio
    async def test_transport_error_raises_generic_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        service = _service(handler)

        with pytest.raises(EmailDeliveryFailed):
            await service.send_verification_email("a@example.com", LINK)

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        outbox = EmailOutbox()
        service = _service(outbox.handler, resend_api_key="")

        with pytest.raises(ConfigurationError):
            await service.send_verification_email("a@example.com", LINK)

        assert outbox.requests == []
