"""Resource wiping module.

This module locates resources matched by a filter document and deletes them
in dependency order, with dry-run and confirmation safeguards.

Classes:
    Sweeper: Main orchestrator for wipe runs
    ResourceCatalog: Registry of per-type list/delete capabilities
    DependencyResolver: Type dependency graph and deletion ordering
    Executor: Deletion driver with retry and failure isolation
"""

from __future__ import annotations

__all__ = [
    "Sweeper",
    "ResourceCatalog",
    "DependencyResolver",
    "Executor",
]
