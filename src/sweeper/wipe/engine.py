"""Wipe engine.

Main orchestrator: load the filter document, enumerate and match resources,
order them dependents-first, execute deletion and collect the results.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import RunConfig
from ..errors import ConfigError, EnumerationError
from ..models.deletion_result import DeletionOutcome, DeletionResult
from ..models.filter_spec import FilterSpec
from ..models.resource import ResourceDescriptor
from .catalog import ResourceCatalog
from .dependency import waves
from .executor import DEFAULT_MAX_ATTEMPTS, ConfirmCallback, Executor
from .loader import load
from .matcher import filter_resources
from .reporter import OutputFormat, WipeReporter

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    """Overall outcome category of a run."""

    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial-failure"
    CONFIG_ERROR = "config-error"
    NOT_CONFIRMED = "not-confirmed"


EXIT_CODES = {
    RunStatus.SUCCEEDED: 0,
    RunStatus.NOT_CONFIRMED: 0,
    RunStatus.PARTIAL_FAILURE: 1,
    RunStatus.CONFIG_ERROR: 2,
}


@dataclass
class RunReport:
    """Result of one wipe run.

    Attributes:
        status: Outcome category
        results: Deletion results in execution order
        enumeration_errors: Types that could not be listed
        error: Cause of a configuration error (optional)
    """

    status: RunStatus
    results: list = field(default_factory=list)
    enumeration_errors: list = field(default_factory=list)
    error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.status]

    @property
    def warnings(self) -> list[str]:
        return [str(e) for e in self.enumeration_errors]

    def count(self, outcome: DeletionOutcome) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)

    def render(self, fmt: OutputFormat = OutputFormat.STRING) -> str:
        return WipeReporter().render(self.results, fmt)


@dataclass
class Plan:
    """Matched resources grouped into deletion waves."""

    spec: FilterSpec
    matched: dict
    waves: list
    enumeration_errors: list

    @property
    def resources(self) -> list[ResourceDescriptor]:
        return [resource for wave in self.waves for resource in wave]


class Sweeper:
    """Wipe orchestrator.

    Attributes:
        catalog: Registered resource types
        config: Run configuration
        confirm: Confirmation callback used when force delete is off
        cancel_event: Set to stop dispatching new deletions
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        config: RunConfig,
        confirm: Optional[ConfirmCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = 1.0,
    ) -> None:
        self.catalog = catalog
        self.config = config
        self.confirm = confirm
        self.cancel_event = cancel_event or threading.Event()
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base

    def plan(self, spec: FilterSpec) -> Plan:
        """Enumerate and match resources for a filter spec.

        Types that fail to list are left out and reported as warnings.

        Raises:
            OrderingError: If the catalog's type graph has a cycle
        """
        enumeration = self.catalog.enumerate(spec.resource_types, workers=self.config.workers)

        matched: dict[str, list[ResourceDescriptor]] = {}
        for type_filter in spec:
            listed = enumeration.resources.get(type_filter.resource_type)
            if listed is None:
                continue
            matched[type_filter.resource_type] = filter_resources(listed, type_filter.predicates)
            logger.info(
                f"{type_filter.resource_type}: {len(matched[type_filter.resource_type])} of {len(listed)} matched"
            )

        return Plan(
            spec=spec,
            matched=matched,
            waves=waves(matched, self.catalog.resolver),
            enumeration_errors=list(enumeration.errors),
        )

    def run(self) -> RunReport:
        """Execute a complete wipe run.

        Returns:
            RunReport; a bad filter document yields status config-error
            without enumerating anything

        Raises:
            OrderingError: If the catalog's type graph has a cycle
        """
        try:
            spec = load(self.config.filter_path, self.catalog)
        except ConfigError as e:
            logger.error(str(e))
            return RunReport(status=RunStatus.CONFIG_ERROR, error=str(e))

        plan = self.plan(spec)

        executor = Executor(
            catalog=self.catalog,
            dry_run=self.config.dry_run,
            force_delete=self.config.force_delete,
            confirm=self.confirm,
            workers=self.config.workers,
            max_attempts=self.max_attempts,
            backoff_base=self.backoff_base,
            cancel_event=self.cancel_event,
        )
        results = executor.execute(plan.waves)

        return RunReport(
            status=self._status(results, plan.enumeration_errors),
            results=results,
            enumeration_errors=plan.enumeration_errors,
        )

    def _status(self, results: list[DeletionResult], errors: list[EnumerationError]) -> RunStatus:
        outcomes = {result.outcome for result in results}

        if DeletionOutcome.NOT_CONFIRMED in outcomes:
            return RunStatus.NOT_CONFIRMED
        if errors or DeletionOutcome.FAILED in outcomes or DeletionOutcome.CANCELLED in outcomes:
            return RunStatus.PARTIAL_FAILURE
        return RunStatus.SUCCEEDED
