"""Deletion execution.

Drives deletion of an ordered set of matched resources with a dry-run
short-circuit, a single confirmation gate, per-resource retry with
exponential backoff, and failure isolation.

Per-resource state transitions:
    matched -> skipped-dry-run                          (dry-run)
    matched -> not-confirmed                            (operator declined)
    matched -> deleting -> deleted | failed             (after confirmation)
    deleting -> deleting                                (transient error, retry)
    matched -> cancelled                                (interrupted before dispatch)
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Sequence

from ..errors import DeletionError, NotConfirmed
from ..models.deletion_result import DeletionOutcome, DeletionResult
from ..models.resource import ResourceDescriptor
from .catalog import ResourceCatalog

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[Sequence[ResourceDescriptor]], bool]

DEFAULT_MAX_ATTEMPTS = 3


class Executor:
    """Deletion driver.

    Resources arrive as waves: every wave only holds resources whose types
    do not depend on each other, so a wave is deleted on a worker pool and
    the next wave starts once the previous one has finished.

    Attributes:
        catalog: Catalog used to issue delete calls
        dry_run: Never call delete; report every resource as skipped
        force_delete: Skip the confirmation gate
        confirm: Called once with the full ordered list; must return True to proceed
        workers: Worker pool size
        max_attempts: Delete attempts per resource for transient errors
        backoff_base: Seconds to wait after the first transient failure
        cancel_event: Set to stop dispatching new deletions
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        dry_run: bool = False,
        force_delete: bool = False,
        confirm: Optional[ConfirmCallback] = None,
        workers: int = 1,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = 1.0,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.catalog = catalog
        self.dry_run = dry_run
        self.force_delete = force_delete
        self.confirm = confirm
        self.workers = workers
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.cancel_event = cancel_event or threading.Event()

    def execute(self, waves: Sequence[Sequence[ResourceDescriptor]]) -> list[DeletionResult]:
        """Process every resource and return results in deletion order.

        Args:
            waves: Resources grouped into dependency waves, in deletion order

        Returns:
            One DeletionResult per resource, in the order of the flattened waves

        Raises:
            ValueError: If a resource appears more than once
        """
        ordered = [resource for wave in waves for resource in wave]
        self._check_unique(ordered)

        if not ordered:
            return []

        if self.dry_run:
            logger.info(f"Dry run: {len(ordered)} resource(s) would be deleted")
            return [DeletionResult(resource=r, outcome=DeletionOutcome.SKIPPED_DRY_RUN) for r in ordered]

        if not self.force_delete and not self._ask_confirmation(ordered):
            logger.info("Deletion not confirmed, nothing deleted")
            return [DeletionResult(resource=r, outcome=DeletionOutcome.NOT_CONFIRMED) for r in ordered]

        results: dict[int, DeletionResult] = {}
        offset = 0
        for wave in waves:
            if self.cancel_event.is_set():
                break
            self._run_wave(wave, offset, results)
            offset += len(wave)

        cancelled = 0
        for index, resource in enumerate(ordered):
            if index not in results:
                results[index] = DeletionResult(resource=resource, outcome=DeletionOutcome.CANCELLED)
                cancelled += 1
        if cancelled:
            logger.warning(f"Run interrupted: {cancelled} resource(s) were not processed")

        return [results[index] for index in range(len(ordered))]

    def _check_unique(self, ordered: Sequence[ResourceDescriptor]) -> None:
        seen = set()
        for resource in ordered:
            key = (resource.resource_type, resource.resource_id)
            if key in seen:
                raise ValueError(f"Resource scheduled twice: {resource.resource_type} {resource.resource_id}")
            seen.add(key)

    def _ask_confirmation(self, ordered: Sequence[ResourceDescriptor]) -> bool:
        if self.confirm is None:
            logger.warning("No confirmation handler configured and force delete is off")
            return False

        try:
            return bool(self.confirm(ordered))
        except NotConfirmed:
            return False

    def _run_wave(
        self,
        wave: Sequence[ResourceDescriptor],
        offset: int,
        results: dict[int, DeletionResult],
    ) -> None:
        """Delete one wave on the worker pool, recording results by position."""
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures: dict[Future, int] = {}
            for index, resource in enumerate(wave, start=offset):
                futures[pool.submit(self._process, resource)] = index

            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except KeyboardInterrupt:
                logger.warning("Interrupted: waiting for in-flight deletions to finish")
                self.cancel_event.set()
                pool.shutdown(wait=True, cancel_futures=True)
                for future, index in futures.items():
                    if future.done() and not future.cancelled():
                        results[index] = future.result()

    def _process(self, resource: ResourceDescriptor) -> DeletionResult:
        """Delete one resource, retrying transient failures with exponential backoff."""
        if self.cancel_event.is_set():
            return DeletionResult(resource=resource, outcome=DeletionOutcome.CANCELLED)

        label = f"{resource.resource_type} {resource.resource_id}"
        attempts = 0

        while True:
            attempts += 1
            try:
                self.catalog.delete(resource)
                logger.info(f"Deleted {label}")
                return DeletionResult(resource=resource, outcome=DeletionOutcome.DELETED, attempts=attempts)

            except DeletionError as e:
                if e.transient and attempts < self.max_attempts:
                    wait_time = self.backoff_base * 2 ** (attempts - 1)
                    logger.debug(
                        f"Transient error deleting {label}: {e}, "
                        f"retrying in {wait_time}s (attempt {attempts}/{self.max_attempts})"
                    )
                    time.sleep(wait_time)
                    continue

                if e.transient:
                    error_msg = f"{e} (gave up after {attempts} attempts)"
                else:
                    error_msg = str(e)
                logger.error(f"Failed to delete {label}: {error_msg}")
                return DeletionResult(
                    resource=resource,
                    outcome=DeletionOutcome.FAILED,
                    attempts=attempts,
                    error=error_msg,
                )

            except Exception as e:
                error_msg = f"Unexpected error: {e}"
                logger.error(f"Failed to delete {label}: {error_msg}")
                return DeletionResult(
                    resource=resource,
                    outcome=DeletionOutcome.FAILED,
                    attempts=attempts,
                    error=error_msg,
                )
