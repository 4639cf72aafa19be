"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.application.command_handlers import CreateBookingCommand
from apps.bookings.domain.orchestrator import BookingDecision

from .models import Booking


class BookingRequestSerializer(serializers.Serializer):
    """Входные данные запроса на бронирование (гость или walk-in)."""

    listing = serializers.UUIDField()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    adults = serializers.IntegerField(min_value=1, default=1)
    children = serializers.IntegerField(min_value=0, default=0)
    infants = serializers.IntegerField(min_value=0, default=0)
    pets = serializers.IntegerField(min_value=0, default=0)
    contact_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    contact_email = serializers.EmailField(required=False, allow_blank=True, default="")
    contact_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    promotion_code = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        if attrs["check_in"] >= attrs["check_out"]:
            raise serializers.ValidationError({"check_out": "Check-out must be after check-in."})
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            if not attrs["contact_name"].strip():
                raise serializers.ValidationError({"contact_name": "Walk-in bookings need a contact name."})
            if not (attrs["contact_email"] or attrs["contact_phone"].strip()):
                raise serializers.ValidationError(
                    {"contact_email": "Walk-in bookings need an email or a phone number."}
                )
        return attrs

    def to_command(self) -> CreateBookingCommand:
        data = self.validated_data
        request = self.context.get("request")
        user = getattr(request, "user", None)
        return CreateBookingCommand(
            listing_id=str(data["listing"]),
            check_in=data["check_in"],
            check_out=data["check_out"],
            adults=data["adults"],
            children=data["children"],
            infants=data["infants"],
            pets=data["pets"],
            user_id=str(user.pk) if user and user.is_authenticated else None,
            contact_name=data["contact_name"],
            contact_email=data["contact_email"],
            contact_phone=data["contact_phone"],
            promotion_code=data["promotion_code"] or None,
            special_requests=data["special_requests"],
        )


class PromotionCodeSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=64)


class BookingSerializer(serializers.ModelSerializer):
    """Полное представление сохранённого бронирования."""

    listing_title = serializers.CharField(source="listing.title", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "listing",
            "listing_title",
            "guest",
            "guest_type",
            "contact_name",
            "contact_email",
            "contact_phone",
            "check_in",
            "check_out",
            "adults",
            "children",
            "infants",
            "pets",
            "status",
            "instant_book",
            "nightly_rate",
            "total_nights",
            "base_price_total",
            "cleaning_fee",
            "service_fee",
            "membership_discount",
            "promotion_discount",
            "discount_amount",
            "total_price",
            "currency",
            "promotion_code",
            "applied_promotions",
            "special_requests",
            "created_at",
        ]
        read_only_fields = fields


def quote_payload(decision: BookingDecision) -> dict:
    """Price breakdown of an accepted-but-not-stored decision"""
    booking = decision.booking
    return {
        "status": booking.status.value,
        "instant_book": booking.instant_book,
        "check_in": booking.dates.start.isoformat(),
        "check_out": booking.dates.end.isoformat(),
        "pricing": booking.priced.to_dict(),
        "applied_discounts": [entry.to_dict() for entry in booking.applied_discounts],
        "states": [state.value for state in decision.trail],
    }
