"""
Transactional email for the double opt-in flow.

Mail goes out through a Resend-compatible HTTP API. Delivery failures are
logged here with their detail and surface to callers as a generic
EmailDeliveryFailed; the API key never appears in logs or errors.
"""

import html
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..utils.errors import ConfigurationError, EmailDeliveryFailed

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Sends verification emails.

    An ``httpx.AsyncClient`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise a short-lived client is opened per send.
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.email_api_url
        self.api_key = settings.resend_api_key
        self.email_from = settings.email_from
        self.newsletter_name = settings.newsletter_name
        self.token_ttl_minutes = settings.verification_token_expire_minutes
        self.timeout = settings.email_timeout_seconds
        self._http_client = http_client

        logger.info(
            f"Notification service initialized: "
            f"email_from={self.email_from}, "
            f"api_configured={bool(self.api_key)}"
        )

    async def send_verification_email(self, email: str, verification_link: str) -> Dict[str, Any]:
        """
        Deliver the verification link to ``email``.

        Args:
            email: Recipient address
            verification_link: Absolute URL carrying the verification token

        Returns:
            Dict with "status", "to" and the provider "id" when available

        Raises:
            ConfigurationError: No email API key configured
            EmailDeliveryFailed: Transport error or non-2xx response
        """
        if not self.api_key:
            raise ConfigurationError("RESEND_API_KEY is not configured")

        payload = {
            "from": self.email_from,
            "to": [email],
            "subject": f"{self.newsletter_name} Newsletter - Email Verification",
            "html": self._build_verification_html(verification_link),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Email send failed to {email}: {type(e).__name__}: {e}")
            raise EmailDeliveryFailed("Verification email could not be sent") from e

        if response.is_error:
            logger.error(
                f"Email API rejected message to {email}: "
                f"status={response.status_code} body={response.text[:200]}"
            )
            raise EmailDeliveryFailed("Verification email could not be sent")

        message_id = None
        try:
            message_id = response.json().get("id")
        except ValueError:
            pass

        logger.info(f"Verification email sent to {email} (id={message_id})")
        return {"status": "sent", "to": email, "id": message_id}

    def _build_verification_html(self, verification_link: str) -> str:
        link = html.escape(verification_link, quote=True)
        name = html.escape(self.newsletter_name)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>Verify Your Subscription</title>
</head>
<body style="font-family: Arial, sans-serif; background-color: #f4f4f4; margin: 0; padding: 20px; text-align: center;">
    <table role="presentation" width="100%" cellspacing="0" cellpadding="0" border="0">
        <tr>
            <td align="center">
                <table role="presentation" width="600" cellspacing="0" cellpadding="0" border="0" style="background-color: #fff; padding: 30px; border-radius: 6px; text-align: left; max-width: 100%;">
                    <tr>
                        <td style="font-size: 18px; font-weight: bold; color: #000;">{name} Newsletter</td>
                    </tr>
                    <tr>
                        <td style="font-size: 16px; color: #333; padding: 20px 0;">
                            To verify your subscription, click the button below:
                        </td>
                    </tr>
                    <tr>
                        <td align="center">
                            <a href="{link}" style="background-color: #000; color: white !important; padding: 12px 24px; text-decoration: none; font-size: 16px; border-radius: 4px; display: inline-block; margin: 10px 0; font-weight: bold;">Verify Email</a>
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 10px;">
                            <p style="font-size: 14px; color: #666;">
                                If you can't see the button above, <a href="{link}" style="color: #0066cc; text-decoration: underline; font-weight: bold;">click here to verify your email</a>.
                            </p>
                        </td>
                    </tr>
                    <tr>
                        <td style="color: #666; font-size: 14px; padding-top: 20px;">Link expires in {self.token_ttl_minutes} minutes.</td>
                    </tr>
                    <tr>
                        <td style="color: #666; font-size: 14px; padding-top: 10px;">
                            Every ~one week, you'll get something good to read from {name} after completing your subscription.
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""
