"""Notification services: event handlers that email and notify guests."""

from __future__ import annotations

import logging

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from apps.bookings.domain.events import BookingAccepted
from apps.rewards.domain.events import RewardEarned, TierUpgraded
from shared.application.message_bus import MessageBus, message_bus

from .models import Notification

logger = logging.getLogger(__name__)


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send one email.

    Args:
        recipient_email: recipient address
        subject: subject line
        template_name: Django template to render (optional)
        context: template context, or {"message": ...} for plain text
        html_message: ready HTML body (optional)

    Returns:
        bool: True when the mail backend accepted the message
    """
    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def notify_user(user_id, title: str, message: str, event_type: str = "") -> Notification | None:
    """Store an in-app notification for a registered user."""
    if not user_id:
        return None
    if not get_user_model().objects.filter(pk=user_id).exists():
        logger.warning(f"Cannot notify unknown user {user_id}")
        return None
    return Notification.objects.create(user_id=user_id, title=title, message=message, event_type=event_type)


def _user_email(user_id) -> str:
    if not user_id:
        return ""
    user = get_user_model().objects.filter(pk=user_id).only("email").first()
    return user.email if user else ""


# ============================================================================
# EVENT HANDLERS
# ============================================================================

def on_booking_accepted(event: BookingAccepted) -> None:
    """Tell the guest the booking is in (confirmed or awaiting the host)."""
    if event.status == "confirmed":
        subject = f"Booking #{event.booking_code} is confirmed!"
        headline = "Your booking is confirmed."
    else:
        subject = f"Booking #{event.booking_code} received"
        headline = "Your request was sent to the host, who will confirm it shortly."

    dates = f"{event.dates.start:%d.%m.%Y} - {event.dates.end:%d.%m.%Y}" if event.dates else ""
    html_message = f"""
    <html>
    <body>
        <h2>Hello{', ' + event.contact_name if event.contact_name else ''}!</h2>
        <p>{headline}</p>
        <ul>
            <li><strong>Booking code:</strong> {event.booking_code}</li>
            <li><strong>Dates:</strong> {dates}</li>
            <li><strong>Total:</strong> {event.total:,} {event.currency}</li>
        </ul>
    </body>
    </html>
    """

    recipient = event.contact_email or _user_email(event.user_id)
    if recipient:
        send_email_notification(
            recipient_email=recipient,
            subject=subject,
            template_name=None,
            context={},
            html_message=html_message,
        )
    notify_user(event.user_id, subject, f"{headline} {dates}".strip(), event_type="booking_accepted")


def on_reward_earned(event: RewardEarned) -> None:
    if event.points <= 0:
        return
    notify_user(
        event.user_id,
        f"You earned {event.points} points",
        f"Your balance is now {event.balance} points.",
        event_type="reward_earned",
    )


def on_tier_upgraded(event: TierUpgraded) -> None:
    title = f"Welcome to {event.new_tier.title()}!"
    message = f"Your membership moved from {event.previous_tier.title()} to {event.new_tier.title()}."
    notify_user(event.user_id, title, message, event_type="tier_upgraded")

    recipient = _user_email(event.user_id)
    if recipient:
        send_email_notification(recipient, title, None, {"message": message})


def register_handlers(bus: MessageBus = message_bus) -> MessageBus:
    """Subscribe the notification handlers (idempotent)."""
    bus.subscribe(BookingAccepted, on_booking_accepted)
    bus.subscribe(RewardEarned, on_reward_earned)
    bus.subscribe(TierUpgraded, on_tier_upgraded)
    return bus
