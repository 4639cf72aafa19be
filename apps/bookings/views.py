"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.listings.repositories import DjangoListingRepository
from apps.promotions.application.command_handlers import (
    ApplyPromotionCommand,
    ApplyPromotionHandler,
    ReleasePromotionCommand,
    ReleasePromotionHandler,
)
from apps.promotions.repositories import DjangoPromotionRepository
from shared.domain.exceptions import ListingNotFound
from shared.domain.results import ErrorCategory, Rejection

from .application.command_handlers import CreateBookingHandler, QuoteBookingHandler
from .models import Booking
from .repositories import DjangoBookingRepository
from .serializers import BookingRequestSerializer, BookingSerializer, PromotionCodeSerializer, quote_payload

REJECTION_STATUS = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.PROMOTION_INELIGIBLE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCategory.DUPLICATE_REWARD: status.HTTP_409_CONFLICT,
    ErrorCategory.INTERNAL: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def rejection_response(rejection: Rejection) -> Response:
    return Response({"error": rejection.to_dict()}, status=REJECTION_STATUS[rejection.category])


def listing_not_found(exc: ListingNotFound) -> Response:
    return Response({"detail": f"Listing {exc.listing_id} not found."}, status=status.HTTP_404_NOT_FOUND)


def handler_kwargs() -> dict:
    return {
        "listing_repo": DjangoListingRepository(),
        "booking_repo": DjangoBookingRepository(),
        "promotion_repo": DjangoPromotionRepository(),
    }


class BookingCreateView(APIView):
    """Создание брони: зарегистрированный гость или walk-in."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)

        try:
            decision = CreateBookingHandler(**handler_kwargs()).handle(serializer.to_command())
        except ListingNotFound as exc:
            return listing_not_found(exc)

        if not decision.accepted:
            return rejection_response(decision.rejection)

        booking = Booking.objects.select_related("listing").get(pk=decision.booking.id)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingQuoteView(APIView):
    """Расчёт стоимости без создания брони."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)

        try:
            decision = QuoteBookingHandler(**handler_kwargs()).handle(serializer.to_command())
        except ListingNotFound as exc:
            return listing_not_found(exc)

        if not decision.accepted:
            return rejection_response(decision.rejection)
        return Response(quote_payload(decision), status=status.HTTP_200_OK)


class BookingPromotionView(APIView):
    """Применение и снятие промокода у брони, ожидающей подтверждения."""

    permission_classes = [permissions.IsAuthenticated]

    def _check_owner(self, request, booking_id):  # type: ignore
        booking = Booking.objects.filter(pk=booking_id).only("id", "guest_id").first()
        if booking is None:
            return Response({"detail": "Booking not found."}, status=status.HTTP_404_NOT_FOUND)
        user = request.user
        if not (user.is_staff or booking.guest_id == user.pk):
            return Response({"detail": "Not your booking."}, status=status.HTTP_403_FORBIDDEN)
        return None

    def post(self, request, booking_id):  # type: ignore
        denied = self._check_owner(request, booking_id)
        if denied is not None:
            return denied
        serializer = PromotionCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = ApplyPromotionHandler(
            DjangoBookingRepository(),
            DjangoPromotionRepository(),
            DjangoListingRepository(),
        )
        result = handler.handle(ApplyPromotionCommand(booking_id=booking_id, code=serializer.validated_data["code"]))
        if not result.ok:
            return rejection_response(result)

        booking = Booking.objects.select_related("listing").get(pk=booking_id)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    def delete(self, request, booking_id):  # type: ignore
        denied = self._check_owner(request, booking_id)
        if denied is not None:
            return denied
        serializer = PromotionCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        handler = ReleasePromotionHandler(DjangoBookingRepository(), DjangoPromotionRepository())
        result = handler.handle(ReleasePromotionCommand(booking_id=booking_id, code=serializer.validated_data["code"]))
        if isinstance(result, Rejection):
            return rejection_response(result)
        if result is None:
            return Response({"detail": "Promotion is not applied to this booking."}, status=status.HTTP_404_NOT_FOUND)

        booking = Booking.objects.select_related("listing").get(pk=booking_id)
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)
