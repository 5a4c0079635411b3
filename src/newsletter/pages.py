"""
Static HTML pages returned by the verification link.
"""

import html
from datetime import datetime, timezone

from .services.verification_service import VerificationOutcome

PAGE_COPY = {
    VerificationOutcome.VERIFIED: (
        "Email Verified Successfully",
        "You've been successfully subscribed to {name}'s blog. Every ~one week you'll get "
        "something good to read. You can now close this page.",
        False,
    ),
    VerificationOutcome.ALREADY_SUBSCRIBED: (
        "Already Subscribed",
        "This email address is already subscribed to {name}'s newsletter. "
        "No further action is needed.",
        False,
    ),
    VerificationOutcome.TOKEN_MISSING: (
        "Token Required",
        "No verification token was provided. Please use the link sent to your email "
        "or request a new verification email.",
        True,
    ),
    VerificationOutcome.TOKEN_EXPIRED: (
        "Verification Token Expired",
        "The verification link has expired. Please request a new verification email "
        "using the button below.",
        True,
    ),
    VerificationOutcome.TOKEN_INVALID: (
        "Invalid Verification Token",
        "The verification token is not valid. It may have been tampered with or is "
        "incorrect. Please request a new verification email using the button below.",
        True,
    ),
    VerificationOutcome.RATE_LIMITED: (
        "Rate Limit Exceeded",
        "You've made too many verification attempts. Please wait {block_minutes} minutes "
        "before trying again.",
        True,
    ),
    VerificationOutcome.FAILED: (
        "Verification Failed",
        "An unexpected error occurred during email verification. Please try again by "
        "requesting a new verification email using the button below.",
        True,
    ),
}


def render_page(title: str, description: str, newsletter_name: str,
                retry_url: str = "", is_error: bool = False) -> str:
    name = html.escape(newsletter_name)
    button_color, button_hover = ("#3B82F6", "#2563EB") if is_error else ("#34D399", "#10B981")
    action = ""
    if is_error:
        action = (
            f'<a href="{html.escape(retry_url, quote=True)}" class="action-button">'
            f'Get a New Verification Link</a>'
        )

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8" />
    <title>{html.escape(title)} - {name}</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', sans-serif; margin: 0; line-height: 1.6; color: #333; background-color: #f4f4f4; }}
        .container {{ max-width: 600px; margin: 50px auto; background: white; padding: 40px; border-radius: 8px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); }}
        h1 {{ color: #0A0A0A; margin-bottom: 20px; font-size: 24px; }}
        .description {{ color: #6B7280; margin-bottom: 30px; }}
        .footer {{ font-size: 14px; color: #6B7280; text-align: center; margin-top: 20px; }}
        .action-button {{ display: inline-block; background-color: {button_color}; color: white; padding: 10px 16px; text-decoration: none; border-radius: 4px; font-weight: 500; margin-top: 10px; }}
        .action-button:hover {{ background-color: {button_hover}; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{html.escape(title)}</h1>
        <div class="description">
            {html.escape(description)}
        </div>
        {action}
        <div class="footer">
            &copy; {datetime.now(timezone.utc).year} {name}
        </div>
    </div>
</body>
</html>
"""


def render_outcome(outcome: VerificationOutcome, newsletter_name: str,
                   retry_url: str, block_seconds: int = 1800) -> str:
    title, template, is_error = PAGE_COPY[outcome]
    description = template.format(name=newsletter_name, block_minutes=max(block_seconds // 60, 1))
    return render_page(title, description, newsletter_name, retry_url=retry_url, is_error=is_error)
