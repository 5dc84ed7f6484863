"""Data models for filter documents, resources and deletion results."""

from __future__ import annotations

from .deletion_result import DeletionOutcome, DeletionResult
from .filter_spec import (
    CreatedAfter,
    CreatedBefore,
    FilterSpec,
    IdIn,
    NameMatches,
    Predicate,
    TagEquals,
    TypeFilter,
)
from .resource import ResourceDescriptor

__all__ = [
    "CreatedAfter",
    "CreatedBefore",
    "DeletionOutcome",
    "DeletionResult",
    "FilterSpec",
    "IdIn",
    "NameMatches",
    "Predicate",
    "ResourceDescriptor",
    "TagEquals",
    "TypeFilter",
]
