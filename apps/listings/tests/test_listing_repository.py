from datetime import date

import pytest

from apps.listings.models import BlockedPeriod, Listing
from apps.listings.repositories import DjangoListingRepository
from shared.domain.exceptions import ListingNotFound
from shared.domain.value_objects import DateRange


@pytest.fixture
def listing(db):
    return Listing.objects.create(
        title="Hillside villa",
        status=Listing.Status.ACTIVE,
        property_type=Listing.PropertyType.VILLA,
        base_price=2_000_000,
        max_guests=6,
        allows_pets=True,
    )


def test_snapshot_carries_booking_rules(listing):
    snapshot = DjangoListingRepository().get(listing.pk, lock=True)

    assert snapshot.id == str(listing.pk)
    assert snapshot.is_active
    assert snapshot.allows_pets
    assert snapshot.service_fee is None
    assert snapshot.property_type == "villa"


def test_draft_listing_is_not_active(listing):
    Listing.objects.filter(pk=listing.pk).update(status=Listing.Status.DRAFT)

    assert not DjangoListingRepository().get(listing.pk).is_active


@pytest.mark.django_db
@pytest.mark.parametrize("listing_id", ["8d5e2c1a-0000-4000-8000-000000000000", "not-a-uuid"])
def test_missing_listing(listing_id):
    with pytest.raises(ListingNotFound):
        DjangoListingRepository().get(listing_id)


def test_blocked_intervals_only_touching_the_stay(listing):
    BlockedPeriod.objects.create(listing=listing, start_date=date(2025, 3, 1), end_date=date(2025, 3, 5))
    BlockedPeriod.objects.create(listing=listing, start_date=date(2025, 3, 5), end_date=date(2025, 3, 8))
    BlockedPeriod.objects.create(listing=listing, start_date=date(2025, 3, 20), end_date=date(2025, 3, 22))

    blocked = DjangoListingRepository().blocked_intervals(listing.pk, DateRange(date(2025, 3, 5), date(2025, 3, 10)))

    assert [interval.dates for interval in blocked] == [DateRange(date(2025, 3, 5), date(2025, 3, 8))]
    assert len(DjangoListingRepository().blocked_intervals(listing.pk)) == 3
