"""URL routing for the booking domain."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import BookingCreateView, BookingPromotionView, BookingQuoteView

urlpatterns = [
    path("", BookingCreateView.as_view(), name="booking-create"),
    path("quote/", BookingQuoteView.as_view(), name="booking-quote"),
    path("<uuid:booking_id>/promotion/", BookingPromotionView.as_view(), name="booking-promotion"),
]
