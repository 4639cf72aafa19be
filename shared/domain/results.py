"""
Typed Results

Expected business outcomes (unavailable dates, ineligible promotions,
duplicate rewards) are returned as values, not raised. Every rejection
carries a category the caller maps to a response, a machine-readable
reason and a human-readable message.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from shared.domain.value_objects import DateRange


class ErrorCategory(Enum):
    VALIDATION = 'validation'                      # malformed input, nothing changed
    CONFLICT = 'conflict'                          # dates, capacity or policy clash
    PROMOTION_INELIGIBLE = 'promotion_ineligible'  # booking may proceed without the code
    DUPLICATE_REWARD = 'duplicate_reward'          # no-op signal, not a user-facing error
    INTERNAL = 'internal'                          # atomic step failed, safe to retry


@dataclass(frozen=True)
class Rejection:
    category: ErrorCategory
    reason: str
    message: str
    conflicting_range: DateRange | None = None
    details: dict[str, Any] = field(default_factory=dict)

    ok = False

    @property
    def kind(self) -> str:
        return self.reason

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.INTERNAL

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            'kind': self.reason,
            'category': self.category.value,
            'message': self.message,
        }
        if self.conflicting_range is not None:
            data['conflicting_range'] = self.conflicting_range.to_dict()
        if self.details:
            data['details'] = dict(self.details)
        return data


@dataclass(frozen=True)
class Available:
    """Positive availability outcome"""
    dates: DateRange

    ok = True


AvailabilityResult = Union[Available, Rejection]
