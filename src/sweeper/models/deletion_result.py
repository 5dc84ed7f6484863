"""Deletion result model.

Outcome of processing one matched resource during a run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .resource import ResourceDescriptor


class DeletionOutcome(Enum):
    """Terminal state of a matched resource."""

    DELETED = "deleted"
    SKIPPED_DRY_RUN = "skipped-dry-run"
    FAILED = "failed"
    NOT_CONFIRMED = "not-confirmed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class DeletionResult:
    """Deletion result entity.

    Validation rules:
        - outcome=failed: requires error
        - outcome=deleted: at least one attempt, no error
        - outcome=skipped-dry-run / not-confirmed / cancelled: zero attempts

    Attributes:
        resource: Descriptor of the resource that was processed
        outcome: Terminal outcome
        attempts: Number of delete calls issued for this resource
        error: Last error message if failed (optional)
    """

    resource: ResourceDescriptor
    outcome: DeletionOutcome
    attempts: int = 0
    error: Optional[str] = None

    def validate(self) -> bool:
        """Validate result invariants.

        Returns:
            True if validation passes

        Raises:
            ValueError: If any validation rule fails
        """
        if self.attempts < 0:
            raise ValueError("Attempt count cannot be negative")

        if self.outcome == DeletionOutcome.FAILED:
            if not self.error:
                raise ValueError("Failed outcome requires error")
        elif self.outcome == DeletionOutcome.DELETED:
            if self.attempts < 1:
                raise ValueError("Deleted outcome requires at least one attempt")
            if self.error:
                raise ValueError("Deleted outcome cannot have an error")
        elif self.attempts:
            raise ValueError(f"{self.outcome.value} outcome cannot have delete attempts")

        return True

    def to_dict(self) -> dict[str, Any]:
        data = self.resource.to_dict()
        data.update(
            {
                "outcome": self.outcome.value,
                "attempts": self.attempts,
                "error": self.error,
            }
        )
        return data
