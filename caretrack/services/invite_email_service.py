"""Invite notifier.

Sends the caretaker invitation link through the Resend API. Delivery is
best-effort: a failed send never fails invitation creation, the inviter gets
the raw link back with a warning instead.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from caretrack.core.config import settings
from caretrack.core.security import build_invite_link
from caretrack.core.structured_logging import build_log_context
from caretrack.db.models import Invitation
from caretrack.services.http_service import DEFAULT_RETRY_STATUSES, request_with_retries

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_MAX_ATTEMPTS = 3
RESEND_RETRY_BASE_DELAY = 0.5
RESEND_RETRY_MAX_DELAY = 4.0
RESEND_TIMEOUT_SECONDS = 20.0

INVITE_SUBJECT = "You're invited to Parkinson Care"
DELIVERY_WARNING = "Invitation created, but the email could not be sent. Share the link manually."


@dataclass
class NotificationResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class Notifier(Protocol):
    async def send(self, email: str, invite_link: str) -> NotificationResult: ...


def _build_invite_text(invite_link: str) -> str:
    return f"""You're invited to Parkinson Care

You've been invited to join Parkinson Care as a caretaker.

Create your account here:
{invite_link}

If you didn't expect this invitation, you can safely ignore this email.
"""


def _build_invite_html(invite_link: str) -> str:
    safe_link = html.escape(invite_link, quote=True)
    return (
        "<h2>You're invited to Parkinson Care</h2>"
        "<p>You've been invited to join Parkinson Care as a caretaker.</p>"
        f'<p><a href="{safe_link}">Create your account</a></p>'
        "<p>If you didn't expect this invitation, you can safely ignore this email.</p>"
    )


class ResendNotifier:
    """Resend-backed notifier."""

    def __init__(self, api_key: str | None, from_email: str):
        self.api_key = api_key
        self.from_email = from_email

    async def send(self, email: str, invite_link: str) -> NotificationResult:
        if not self.api_key:
            return NotificationResult(
                success=False,
                error="Email sender not configured (missing RESEND_API_KEY)",
            )

        payload = {
            "from": self.from_email,
            "to": [email],
            "subject": INVITE_SUBJECT,
            "html": _build_invite_html(invite_link),
            "text": _build_invite_text(invite_link),
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

            response = await request_with_retries(
                request_fn,
                max_attempts=RESEND_MAX_ATTEMPTS,
                base_delay=RESEND_RETRY_BASE_DELAY,
                max_delay=RESEND_RETRY_MAX_DELAY,
                retry_statuses=DEFAULT_RETRY_STATUSES,
            )

        if 200 <= response.status_code < 300:
            data = response.json()
            message_id = data.get("id") if isinstance(data, dict) else None
            return NotificationResult(success=True, message_id=message_id)

        return NotificationResult(
            success=False, error=f"Resend API error: {response.status_code}"
        )


def get_notifier() -> Notifier:
    """FastAPI dependency; tests override it with a fake."""
    return ResendNotifier(settings.RESEND_API_KEY, settings.INVITE_FROM_EMAIL)


@dataclass
class InvitationDelivery:
    invite_link: str
    email_sent: bool
    warning: str | None = None


async def deliver_invitation(notifier: Notifier, invitation: Invitation) -> InvitationDelivery:
    """
    Hand the invite link to the notifier.

    Never raises: any notifier failure is logged and reported as a warning.
    """
    invite_link = build_invite_link(invitation.token)
    log_context = build_log_context(user_id=invitation.invited_by_user_id)

    try:
        result = await notifier.send(invitation.email, invite_link)
    except Exception as exc:
        # Avoid leaking the token or address into logs; the exception type is enough.
        logger.warning(
            "Invite email send raised %s for invitation=%s",
            exc.__class__.__name__,
            invitation.id,
            extra=log_context,
        )
        return InvitationDelivery(invite_link=invite_link, email_sent=False, warning=DELIVERY_WARNING)

    if not result.success:
        logger.warning(
            "Invite email failed for invitation=%s: %s",
            invitation.id,
            result.error,
            extra=log_context,
        )
        return InvitationDelivery(invite_link=invite_link, email_sent=False, warning=DELIVERY_WARNING)

    logger.info("Invite email sent for invitation=%s", invitation.id, extra=log_context)
    return InvitationDelivery(invite_link=invite_link, email_sent=True)
