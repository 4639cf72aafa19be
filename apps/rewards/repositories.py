"""
Rewards repositories

credit() is the one atomic step of the ledger: lock the user's reward
state, look up the idempotency key, let RewardsLedger.plan_credit decide,
then append the transaction and move the balance together. The partial
unique constraint on (user, action, reference_id) is the last line against
a duplicate that slips past the lookup.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, List, Tuple
from uuid import uuid4

from django.contrib.auth import get_user_model  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import DatabaseError, IntegrityError, transaction  # type: ignore
from django.db.models import F  # type: ignore

from apps.rewards.domain.entities import (
    CreditResult,
    RewardAction,
    RewardTransaction,
    TierTable,
    UserRewardState,
)
from apps.rewards.domain.ledger import RewardsLedger, duplicate, reference_key
from shared.domain.results import ErrorCategory, Rejection
from shared.infrastructure.locking import lock_queryset_if_possible

logger = logging.getLogger(__name__)

CREDIT_FAILED = 'CREDIT_FAILED'


def credit_failed(action_slug: str) -> Rejection:
    return Rejection(
        category=ErrorCategory.INTERNAL,
        reason=CREDIT_FAILED,
        message="Could not record the reward right now. Please try again.",
        details={'action': action_slug},
    )


def history_window(action: RewardAction | None) -> timedelta | None:
    """How far back frequency rules need to look"""
    if action is None:
        return None
    windows = []
    if action.cooldown_hours:
        windows.append(timedelta(hours=action.cooldown_hours))
    if action.max_times_per_week:
        windows.append(timedelta(days=7))
    return max(windows) if windows else None


class AbstractRewardsRepository(ABC):

    @abstractmethod
    def tier_table(self) -> TierTable:
        """Configured tiers, or the seeded defaults"""

    @abstractmethod
    def get_state(self, user_id) -> UserRewardState | None:
        ...

    @abstractmethod
    def credit(
        self,
        user_id,
        action_slug: str,
        ledger: RewardsLedger,
        now: datetime,
        reference_id: str | None = None,
        metadata: dict | None = None,
        multiplier=1,
    ) -> CreditResult | Rejection:
        """Atomically append a transaction and update balance and tier"""


class DjangoRewardsRepository(AbstractRewardsRepository):

    def tier_table(self) -> TierTable:
        from .models import RewardTier

        tiers = [row.to_domain() for row in RewardTier.objects.all()]
        return TierTable(tiers) if tiers else TierTable()

    def get_state(self, user_id) -> UserRewardState | None:
        from .models import UserRewardState as StateModel

        if not self._user_exists(user_id):
            return None
        state = StateModel.objects.filter(user_id=user_id).first()
        return state.to_domain() if state else UserRewardState(user_id=str(user_id))

    def credit(self, user_id, action_slug, ledger, now, reference_id=None, metadata=None, multiplier=1):
        from .models import RewardAction as ActionModel, RewardTransaction as TransactionModel
        from .models import UserRewardState as StateModel

        reference_id = reference_key(reference_id)
        user_exists = self._user_exists(user_id)

        try:
            with transaction.atomic():
                action_model = ActionModel.objects.filter(slug=action_slug).first()
                action = action_model.to_domain() if action_model else None

                state = state_model = None
                if user_exists:
                    state_model, _ = StateModel.objects.get_or_create(user_id=user_id)
                    state_model = lock_queryset_if_possible(StateModel.objects.filter(pk=state_model.pk)).get()
                    state = state_model.to_domain()

                existing = None
                history: List[RewardTransaction] = []
                if action_model is not None and state is not None:
                    transactions = TransactionModel.objects.filter(user_id=user_id, action=action_model)
                    if reference_id:
                        found = transactions.filter(reference_id=reference_id).first()
                        existing = found.to_domain() if found else None
                    window = history_window(action)
                    if window is not None:
                        history = [tx.to_domain() for tx in transactions.filter(created_at__gt=now - window)]

                plan = ledger.plan_credit(
                    state,
                    action,
                    now,
                    reference_id=reference_id,
                    existing=existing,
                    history=history,
                    multiplier=multiplier,
                )
                if isinstance(plan, Rejection):
                    return plan

                record = TransactionModel.objects.create(
                    user_id=user_id,
                    action=action_model,
                    reference_id=reference_id,
                    points=plan.points,
                    balance_after=plan.balance_after,
                    metadata={
                        **(metadata or {}),
                        'tier_multiplier': str(plan.tier_multiplier),
                        'custom_multiplier': str(plan.custom_multiplier),
                    },
                    created_at=now,
                )
                StateModel.objects.filter(pk=state_model.pk).update(
                    points=F("points") + plan.points,
                    tier=plan.tier,
                )
        except IntegrityError:
            found = TransactionModel.objects.filter(
                user_id=user_id,
                action__slug=action_slug,
                reference_id=reference_id,
            ).first()
            if found is None:
                logger.error(f"Integrity error crediting {action_slug} to user {user_id}", exc_info=True)
                return credit_failed(action_slug)
            logger.info(f"Concurrent duplicate credit of {action_slug} for user {user_id} ({reference_id})")
            return duplicate(found.to_domain())
        except DatabaseError as e:
            logger.error(f"Failed to credit {action_slug} to user {user_id}: {e}", exc_info=True)
            return credit_failed(action_slug)

        return CreditResult(
            transaction=RewardTransaction(
                id=str(record.pk),
                user_id=str(user_id),
                action_slug=action_slug,
                points=plan.points,
                balance_after=plan.balance_after,
                created_at=now,
                reference_id=reference_id,
                metadata=dict(record.metadata),
            ),
            balance=plan.balance_after,
            tier=plan.tier,
            previous_tier=plan.previous_tier,
            tier_upgraded=plan.tier_upgraded,
        )

    @staticmethod
    def _user_exists(user_id) -> bool:
        if user_id in (None, ''):
            return False
        try:
            return get_user_model().objects.filter(pk=user_id).exists()
        except (ValueError, TypeError, ValidationError):
            return False


class InMemoryRewardsRepository(AbstractRewardsRepository):
    """Thread-safe repository for tests and tools that run without a database"""

    def __init__(self, actions=(), tiers: TierTable | None = None):
        self._lock = threading.Lock()
        self._tiers = tiers or TierTable()
        self._actions: Dict[str, RewardAction] = {action.slug: action for action in actions}
        self._states: Dict[str, UserRewardState] = {}
        self._transactions: List[RewardTransaction] = []
        self._keys: Dict[Tuple[str, str, str], RewardTransaction] = {}

    def add_user(self, user_id, points: int = 0, tier: str = 'BRONZE') -> UserRewardState:
        state = UserRewardState(user_id=str(user_id), points=points, tier=tier)
        with self._lock:
            self._states[str(user_id)] = state
        return state

    def add_action(self, action: RewardAction):
        with self._lock:
            self._actions[action.slug] = action

    def tier_table(self) -> TierTable:
        return self._tiers

    def get_state(self, user_id) -> UserRewardState | None:
        with self._lock:
            state = self._states.get(str(user_id))
            return dataclasses.replace(state) if state else None

    def transactions(self, user_id=None) -> List[RewardTransaction]:
        with self._lock:
            return [tx for tx in self._transactions if user_id is None or tx.user_id == str(user_id)]

    def credit(self, user_id, action_slug, ledger, now, reference_id=None, metadata=None, multiplier=1):
        user_id = str(user_id)
        reference_id = reference_key(reference_id)
        with self._lock:
            state = self._states.get(user_id)
            action = self._actions.get(action_slug)
            existing = self._keys.get((user_id, action_slug, reference_id)) if reference_id else None
            history = [
                tx for tx in self._transactions
                if tx.user_id == user_id and tx.action_slug == action_slug
            ]
            plan = ledger.plan_credit(
                state,
                action,
                now,
                reference_id=reference_id,
                existing=existing,
                history=history,
                multiplier=multiplier,
            )
            if isinstance(plan, Rejection):
                return plan

            record = RewardTransaction(
                id=str(uuid4()),
                user_id=user_id,
                action_slug=action_slug,
                points=plan.points,
                balance_after=plan.balance_after,
                created_at=now,
                reference_id=reference_id,
                metadata=dict(metadata or {}),
            )
            self._transactions.append(record)
            if reference_id:
                self._keys[(user_id, action_slug, reference_id)] = record
            state.points = plan.balance_after
            state.tier = plan.tier

        return CreditResult(
            transaction=record,
            balance=plan.balance_after,
            tier=plan.tier,
            previous_tier=plan.previous_tier,
            tier_upgraded=plan.tier_upgraded,
        )
