"""
Engine Exceptions

Only defects and vanished collaborators are raised. Routine outcomes are
returned as shared.domain.results.Rejection.
"""


class BookingEngineError(Exception):
    """Base class for unexpected booking engine failures."""


class ListingNotFound(BookingEngineError):
    """Raised when a listing disappears between request and commit."""

    def __init__(self, listing_id):
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} not found")


class PromotionNotFound(BookingEngineError):
    """Raised when a redemption targets a promotion that no longer exists."""

    def __init__(self, promotion_id):
        self.promotion_id = promotion_id
        super().__init__(f"Promotion {promotion_id} not found")


class InvalidStatus(BookingEngineError, ValueError):
    """Raised for a status string missing from the canonical mapping table."""
