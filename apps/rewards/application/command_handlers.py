"""
Rewards Command Handlers

Commands:
- CreditPointsCommand: award points for an action, at most once per
  (user, action, reference_id)
"""

from dataclasses import dataclass, field
import logging

from shared.application.uow import DjangoUnitOfWork
from shared.domain.clock import Clock, SystemClock
from shared.domain.results import ErrorCategory, Rejection
from apps.rewards.domain.entities import CreditResult
from apps.rewards.domain.events import RewardEarned, TierUpgraded
from apps.rewards.domain.ledger import RewardsLedger

logger = logging.getLogger(__name__)


@dataclass
class CreditPointsCommand:
    user_id: str
    action_slug: str
    reference_id: str | None = None
    metadata: dict = field(default_factory=dict)
    multiplier: float = 1


class CreditPointsHandler:
    """
    Credit loyalty points

    Retry-safe: a repeated command with the same reference_id returns a
    DUPLICATE rejection carrying the original transaction id and changes
    nothing. RewardEarned (and TierUpgraded on promotion) are published
    after commit.
    """

    def __init__(self, rewards_repo, ledger: RewardsLedger | None = None, clock: Clock | None = None,
                 uow_factory=DjangoUnitOfWork):
        self.rewards_repo = rewards_repo
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.uow_factory = uow_factory

    def handle(self, command: CreditPointsCommand) -> CreditResult | Rejection:
        logger.info(
            f"Crediting {command.action_slug} to user {command.user_id} "
            f"(reference {command.reference_id})"
        )
        ledger = self.ledger or RewardsLedger(self.rewards_repo.tier_table())

        with self.uow_factory() as uow:
            result = self.rewards_repo.credit(
                command.user_id,
                command.action_slug,
                ledger,
                self.clock.now(),
                reference_id=command.reference_id,
                metadata=command.metadata,
                multiplier=command.multiplier,
            )
            if isinstance(result, Rejection):
                self._log_rejection(command, result)
                return result

            uow.add_event(RewardEarned(
                user_id=str(command.user_id),
                action_slug=command.action_slug,
                points=result.points,
                balance=result.balance,
                reference_id=command.reference_id,
            ))
            if result.tier_upgraded:
                uow.add_event(TierUpgraded(
                    user_id=str(command.user_id),
                    previous_tier=result.previous_tier,
                    new_tier=result.tier,
                ))

        logger.info(
            f"User {command.user_id} earned {result.points} points for {command.action_slug}, "
            f"balance {result.balance} ({result.tier})"
        )
        return result

    @staticmethod
    def _log_rejection(command: CreditPointsCommand, rejection: Rejection):
        if rejection.category is ErrorCategory.DUPLICATE_REWARD:
            logger.info(f"Reward {command.action_slug} already credited for reference {command.reference_id}")
        elif rejection.retryable:
            logger.warning(f"Reward credit for user {command.user_id} failed, retry later")
        else:
            logger.info(f"Reward {command.action_slug} refused for user {command.user_id}: {rejection.reason}")
