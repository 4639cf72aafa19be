"""Celery tasks for the rewards ledger."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from apps.bookings.models import Booking

from .application.command_handlers import CreditPointsCommand, CreditPointsHandler
from .repositories import DjangoRewardsRepository

logger = logging.getLogger(__name__)

BOOKING_COMPLETED_ACTION = "booking-completed"


@shared_task(bind=True, name="rewards.credit_booking_completion", max_retries=3, default_retry_delay=30)
def credit_booking_completion(self, booking_id: str) -> dict[str, object]:
    """
    Credit the guest for a completed stay.

    The booking id is the idempotency reference, so redelivery and retries
    never pay twice.
    """
    booking = Booking.objects.filter(pk=booking_id).only("id", "guest_id", "status", "booking_code").first()
    if booking is None:
        logger.warning(f"Booking {booking_id} not found, no reward credited")
        return {"status": "missing"}
    if booking.status != Booking.Status.COMPLETED:
        logger.info(f"Booking {booking.booking_code} is {booking.status}, reward waits for completion")
        return {"status": "skipped"}
    if booking.guest_id is None:
        return {"status": "walk_in"}

    handler = CreditPointsHandler(DjangoRewardsRepository())
    result = handler.handle(CreditPointsCommand(
        user_id=str(booking.guest_id),
        action_slug=BOOKING_COMPLETED_ACTION,
        reference_id=str(booking.pk),
        metadata={"booking_code": booking.booking_code},
    ))

    if not result.ok:
        if result.retryable:
            raise self.retry()
        return {"status": result.reason.lower()}
    return {"status": "credited", "points": result.points, "balance": result.balance}
