import uuid
from datetime import date

import pytest
from django.contrib.auth import get_user_model

from apps.bookings.domain.events import BookingAccepted
from apps.notifications.models import Notification
from apps.notifications.services import (
    on_booking_accepted,
    on_reward_earned,
    on_tier_upgraded,
    register_handlers,
)
from apps.rewards.domain.events import RewardEarned, TierUpgraded
from shared.application.message_bus import MessageBus
from shared.domain.value_objects import DateRange


@pytest.fixture
def guest(db):
    return get_user_model().objects.create_user(username="guest", email="guest@example.com", password="pass")


def accepted(**overrides):
    values = {
        "booking_id": str(uuid.uuid4()),
        "booking_code": "BK20250301ABC123",
        "listing_id": str(uuid.uuid4()),
        "status": "pending",
        "dates": DateRange(date(2025, 3, 10), date(2025, 3, 13)),
        "total": 3_350_000,
    }
    values.update(overrides)
    return BookingAccepted(**values)


def test_registered_guest_gets_email_and_notification(guest, mailoutbox):
    on_booking_accepted(accepted(user_id=str(guest.pk), status="confirmed"))

    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == ["guest@example.com"]
    assert mailoutbox[0].subject == "Booking #BK20250301ABC123 is confirmed!"
    assert "3,350,000 VND" in mailoutbox[0].alternatives[0][0]

    notification = Notification.objects.get(user=guest)
    assert notification.event_type == "booking_accepted"
    assert "10.03.2025 - 13.03.2025" in notification.message


@pytest.mark.django_db
def test_walk_in_guest_only_gets_email(mailoutbox):
    on_booking_accepted(accepted(contact_email="walkin@example.com", contact_name="Hoa"))

    assert mailoutbox[0].to == ["walkin@example.com"]
    assert mailoutbox[0].subject == "Booking #BK20250301ABC123 received"
    assert not Notification.objects.exists()


def test_reward_notifications(guest, mailoutbox):
    on_reward_earned(RewardEarned(user_id=str(guest.pk), action_slug="review-written", points=0, balance=10))
    on_reward_earned(RewardEarned(user_id=str(guest.pk), action_slug="review-written", points=100, balance=600))
    on_tier_upgraded(TierUpgraded(user_id=str(guest.pk), previous_tier="BRONZE", new_tier="SILVER"))

    titles = list(Notification.objects.order_by("id").values_list("title", flat=True))
    assert titles == ["You earned 100 points", "Welcome to Silver!"]
    assert mailoutbox[0].subject == "Welcome to Silver!"


@pytest.mark.django_db
def test_unknown_user_is_skipped():
    on_reward_earned(RewardEarned(user_id="424242", action_slug="review-written", points=5, balance=5))

    assert not Notification.objects.exists()


def test_register_handlers_is_idempotent():
    bus = MessageBus()

    register_handlers(bus)
    register_handlers(bus)

    assert bus.handlers_for(BookingAccepted) == [on_booking_accepted]
    assert bus.handlers_for(RewardEarned) == [on_reward_earned]
    assert bus.handlers_for(TierUpgraded) == [on_tier_upgraded]
