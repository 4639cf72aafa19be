"""
Promotion repositories

redeem() is the only place a usage counter moves. It is atomic with
respect to the global cap, the per-redeemer cap and the one-redemption-
per-booking rule: under any number of concurrent callers at most
max_uses redemptions succeed and every loser gets USAGE_EXHAUSTED (or
USER_LIMIT_REACHED / ALREADY_APPLIED).

Two implementations share the contract:
- DjangoPromotionRepository: row lock plus a conditional UPDATE guarded by
  used_count < max_uses, and a unique redemption row.
- InMemoryPromotionRepository: the same steps under a threading.Lock.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from django.core.exceptions import ValidationError  # type: ignore
from django.db import DatabaseError, IntegrityError, transaction  # type: ignore
from django.db.models import F, Q  # type: ignore

from apps.promotions.domain.engine import (
    ALREADY_APPLIED,
    INACTIVE,
    NOT_FOUND,
    USAGE_EXHAUSTED,
    USER_LIMIT_REACHED,
    ineligible,
)
from apps.promotions.domain.entities import Promotion, Redemption, normalize_code
from shared.domain.results import ErrorCategory, Rejection
from shared.infrastructure.locking import lock_queryset_if_possible

logger = logging.getLogger(__name__)

REDEMPTION_FAILED = 'REDEMPTION_FAILED'


def redemption_failed(code: str) -> Rejection:
    return Rejection(
        category=ErrorCategory.INTERNAL,
        reason=REDEMPTION_FAILED,
        message="Could not record the promotion right now. Please try again.",
        details={'code': code},
    )


class AbstractPromotionRepository(ABC):

    @abstractmethod
    def get_by_code(self, code: str) -> Promotion | None:
        """Snapshot of the promotion, or None when the code is unknown"""

    @abstractmethod
    def count_redemptions(self, code: str, redeemer_key: str) -> int:
        """Active redemptions of `code` by one redeemer"""

    @abstractmethod
    def redeem(
        self,
        promotion: Promotion,
        redeemer_key: str,
        booking_id,
        amount: int = 0,
        user_id=None,
    ) -> Redemption | Rejection:
        """Atomically consume one usage slot and record the redemption"""

    @abstractmethod
    def release(self, code: str, redeemer_key: str, booking_id) -> bool:
        """Undo a redemption and free its slot. False when nothing was redeemed"""


class DjangoPromotionRepository(AbstractPromotionRepository):

    def get_by_code(self, code: str) -> Promotion | None:
        from .models import Promotion as PromotionModel

        model = PromotionModel.objects.filter(code=normalize_code(code)).first()
        return model.to_domain() if model else None

    def count_redemptions(self, code: str, redeemer_key: str) -> int:
        from .models import PromotionRedemption

        return PromotionRedemption.objects.filter(
            promotion__code=normalize_code(code),
            redeemer_key=redeemer_key,
            status=PromotionRedemption.Status.USED,
        ).count()

    def redeem(self, promotion, redeemer_key, booking_id, amount=0, user_id=None):
        from .models import Promotion as PromotionModel, PromotionRedemption

        code = promotion.code
        try:
            with transaction.atomic():
                queryset = lock_queryset_if_possible(PromotionModel.objects.filter(code=code))
                model = queryset.first()
                if model is None:
                    return ineligible(NOT_FOUND, "Promotion code does not exist.", code=code)
                if not model.is_active:
                    return ineligible(INACTIVE, "Promotion is no longer active.", code=code)

                redemptions = PromotionRedemption.objects.filter(promotion=model, redeemer_key=redeemer_key)
                existing = redemptions.filter(booking_id=booking_id).first()
                if existing is not None and existing.status == PromotionRedemption.Status.USED:
                    return ineligible(ALREADY_APPLIED, "Promotion is already applied to this booking.", code=code)

                if model.max_uses_per_user:
                    used = redemptions.filter(status=PromotionRedemption.Status.USED).count()
                    if used >= model.max_uses_per_user:
                        return ineligible(
                            USER_LIMIT_REACHED,
                            "You have already used this promotion the maximum number of times.",
                            code=code,
                        )

                # conditional increment: the database refuses to pass the cap
                updated = (
                    PromotionModel.objects
                    .filter(pk=model.pk)
                    .filter(Q(max_uses__isnull=True) | Q(max_uses=0) | Q(used_count__lt=F("max_uses")))
                    .update(used_count=F("used_count") + 1)
                )
                if not updated:
                    return ineligible(USAGE_EXHAUSTED, "Promotion usage limit reached.", code=code)

                if existing is not None:
                    existing.status = PromotionRedemption.Status.USED
                    existing.amount = amount
                    existing.save(update_fields=["status", "amount", "updated_at"])
                    record = existing
                else:
                    record = PromotionRedemption.objects.create(
                        promotion=model,
                        redeemer_key=redeemer_key,
                        user_id=user_id,
                        booking_id=booking_id,
                        amount=amount,
                    )
                model.refresh_from_db(fields=["used_count"])
        except IntegrityError:
            logger.warning(f"Duplicate redemption of {code} by {redeemer_key} for booking {booking_id}")
            return ineligible(ALREADY_APPLIED, "Promotion is already applied to this booking.", code=code)
        except (DatabaseError, ValidationError) as e:
            logger.error(f"Failed to redeem promotion {code}: {e}", exc_info=True)
            return redemption_failed(code)

        logger.info(f"Promotion {code} redeemed by {redeemer_key} ({model.used_count}/{model.max_uses or '-'})")
        return Redemption(
            promotion_code=code,
            redeemer_key=redeemer_key,
            booking_id=str(booking_id),
            amount=amount,
            used_count=model.used_count,
            id=str(record.pk),
        )

    def release(self, code, redeemer_key, booking_id) -> bool:
        from .models import Promotion as PromotionModel, PromotionRedemption

        code = normalize_code(code)
        with transaction.atomic():
            model = lock_queryset_if_possible(PromotionModel.objects.filter(code=code)).first()
            if model is None:
                return False
            released = PromotionRedemption.objects.filter(
                promotion=model,
                redeemer_key=redeemer_key,
                booking_id=booking_id,
                status=PromotionRedemption.Status.USED,
            ).update(status=PromotionRedemption.Status.RELEASED)
            if not released:
                return False
            PromotionModel.objects.filter(pk=model.pk, used_count__gt=0).update(used_count=F("used_count") - 1)

        logger.info(f"Promotion {code} released by {redeemer_key} for booking {booking_id}")
        return True


class InMemoryPromotionRepository(AbstractPromotionRepository):
    """Thread-safe repository for tests and tools that run without a database"""

    def __init__(self, promotions=()):
        self._lock = threading.Lock()
        self._promotions: Dict[str, Promotion] = {}
        # (code, redeemer_key, booking_id) -> [status, amount]
        self._redemptions: Dict[Tuple[str, str, str], list] = {}
        for promotion in promotions:
            self.add(promotion)

    def add(self, promotion: Promotion):
        with self._lock:
            self._promotions[promotion.code] = promotion

    def get_by_code(self, code):
        with self._lock:
            return self._promotions.get(normalize_code(code))

    def count_redemptions(self, code, redeemer_key):
        with self._lock:
            return self._count_used(normalize_code(code), redeemer_key)

    def _count_used(self, code, redeemer_key):
        # caller holds self._lock
        return sum(
            1 for (c, key, _), (status, _amount) in self._redemptions.items()
            if c == code and key == redeemer_key and status == 'used'
        )

    def redeem(self, promotion, redeemer_key, booking_id, amount=0, user_id=None):
        code = promotion.code
        booking_id = str(booking_id)
        with self._lock:
            current = self._promotions.get(code)
            if current is None:
                return ineligible(NOT_FOUND, "Promotion code does not exist.", code=code)
            if not current.is_active:
                return ineligible(INACTIVE, "Promotion is no longer active.", code=code)

            key = (code, redeemer_key, booking_id)
            existing = self._redemptions.get(key)
            if existing is not None and existing[0] == 'used':
                return ineligible(ALREADY_APPLIED, "Promotion is already applied to this booking.", code=code)
            if current.has_per_user_cap and self._count_used(code, redeemer_key) >= current.max_uses_per_user:
                return ineligible(
                    USER_LIMIT_REACHED,
                    "You have already used this promotion the maximum number of times.",
                    code=code,
                )
            if current.has_usage_cap and current.used_count >= current.max_uses:
                return ineligible(USAGE_EXHAUSTED, "Promotion usage limit reached.", code=code)

            current = dataclasses.replace(current, used_count=current.used_count + 1)
            self._promotions[code] = current
            self._redemptions[key] = ['used', amount]

        return Redemption(
            promotion_code=code,
            redeemer_key=redeemer_key,
            booking_id=booking_id,
            amount=amount,
            used_count=current.used_count,
        )

    def release(self, code, redeemer_key, booking_id) -> bool:
        code = normalize_code(code)
        with self._lock:
            entry = self._redemptions.get((code, redeemer_key, str(booking_id)))
            if entry is None or entry[0] != 'used':
                return False
            entry[0] = 'released'
            current = self._promotions[code]
            self._promotions[code] = dataclasses.replace(current, used_count=max(current.used_count - 1, 0))
        return True
