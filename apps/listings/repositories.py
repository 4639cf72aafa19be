"""Read access to listing snapshots and host-blocked periods."""

from __future__ import annotations

import logging
from typing import List

from django.core.exceptions import ValidationError  # type: ignore
from django.db.models import Q  # type: ignore

from apps.bookings.domain.entities import BlockedInterval, Listing
from shared.domain.exceptions import ListingNotFound
from shared.domain.value_objects import DateRange
from shared.infrastructure.locking import lock_queryset_if_possible

from .models import BlockedPeriod, Listing as ListingModel

logger = logging.getLogger(__name__)


class DjangoListingRepository:

    def get(self, listing_id, *, lock: bool = False) -> Listing:
        """
        Load a listing snapshot

        With lock=True the listing row is locked (SELECT FOR UPDATE) for the
        rest of the transaction. This is the serializing lock that keeps two
        guests from being confirmed for the same dates.
        """
        try:
            queryset = ListingModel.objects.filter(pk=listing_id)
            if lock:
                queryset = lock_queryset_if_possible(queryset)
            listing = queryset.first()
        except ValidationError:
            listing = None
        if listing is None:
            logger.warning(f"Listing {listing_id} not found")
            raise ListingNotFound(listing_id)
        return listing.to_snapshot()

    def blocked_intervals(self, listing_id, dates: DateRange | None = None) -> List[BlockedInterval]:
        queryset = BlockedPeriod.objects.filter(listing_id=listing_id)
        if dates is not None:
            queryset = queryset.filter(Q(start_date__lt=dates.end) & Q(end_date__gt=dates.start))
        return [period.to_interval() for period in queryset.order_by("start_date")]
