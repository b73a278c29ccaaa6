"""
Contact form relay: renders and sends the submitter confirmation and the
admin notification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from impex_api.config import Settings
from impex_api.errors import MailTransportError
from impex_api.mail import MailRelay, OutgoingMessage
from impex_api.rendering import render

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Your message has been sent successfully!"


@dataclass
class ContactSubmission:
    name: str
    email: str
    message: str
    phone: Optional[str] = None


def _template_context(submission: ContactSubmission, settings: Settings) -> dict:
    return {
        "name": submission.name,
        "email": submission.email,
        "phone": submission.phone,
        "message": submission.message,
        "brand_name": settings.brand_name,
        "site_url": settings.site_url,
    }


def build_user_confirmation(
    submission: ContactSubmission, settings: Settings, *, now: Optional[datetime] = None
) -> OutgoingMessage:
    context = _template_context(submission, settings)
    context["year"] = (now or datetime.now()).year
    return OutgoingMessage(
        sender_name=f"{settings.brand_name} Support",
        sender_address=settings.email_user,
        to=submission.email,
        reply_to=settings.email_user,
        subject=f"Thank you for contacting {settings.brand_name}",
        html=render("user_confirmation.html", **context),
        text=render("user_confirmation.txt", **context).strip(),
        headers={
            "X-Priority": "1",
            "Importance": "high",
            "List-Unsubscribe": f"<mailto:{settings.email_user}?subject=unsubscribe>",
            "Precedence": "bulk",
        },
    )


def build_admin_notification(
    submission: ContactSubmission, settings: Settings, *, now: Optional[datetime] = None
) -> OutgoingMessage:
    context = _template_context(submission, settings)
    context["submitted_at"] = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return OutgoingMessage(
        sender_name="Contact Form",
        sender_address=settings.email_user,
        to=settings.admin_email,
        subject=f"New Contact Form Submission from {submission.name}",
        html=render("admin_notification.html", **context),
        text=render("admin_notification.txt", **context).strip(),
    )


async def relay_submission(
    submission: ContactSubmission, relay: MailRelay, settings: Settings
) -> None:
    """
    Send both emails over one relay session.

    The user confirmation is best effort. A failure to deliver the admin
    notification raises ``MailTransportError``.
    """
    now = datetime.now()
    user_message = build_user_confirmation(submission, settings, now=now)
    admin_message = build_admin_notification(submission, settings, now=now)

    async with relay.session() as session:
        try:
            await session.send(user_message)
            logger.info("User confirmation email sent to %s", submission.email)
        except MailTransportError:
            logger.exception("Error sending user confirmation email")

        try:
            await session.send(admin_message)
            logger.info("Admin notification email sent for %s", submission.email)
        except MailTransportError:
            logger.exception("Error sending admin notification email")
            raise
