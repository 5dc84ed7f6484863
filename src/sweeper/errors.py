"""Exception hierarchy for the wiping engine."""

from __future__ import annotations

from typing import Optional, Sequence


class SweeperError(Exception):
    """Base class for all sweeper errors."""


class ConfigError(SweeperError):
    """Filter document or run configuration is invalid. Nothing is enumerated."""


class OrderingError(SweeperError):
    """Dependency cycle between registered resource types."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency between resource types: {' -> '.join(self.cycle)}")


class EnumerationError(SweeperError):
    """Listing the resources of one type failed."""

    def __init__(self, resource_type: str, message: str) -> None:
        self.resource_type = resource_type
        super().__init__(f"Failed to list {resource_type}: {message}")


class DeletionError(SweeperError):
    """Deleting a single resource failed.

    Attributes:
        transient: True if the failure may go away on retry (throttling,
            dependency still being torn down, eventual consistency)
        code: Provider error code, if any
    """

    def __init__(self, message: str, transient: bool = False, code: Optional[str] = None) -> None:
        self.transient = transient
        self.code = code
        super().__init__(message)


class NotConfirmed(SweeperError):
    """Operator declined the deletion prompt."""
