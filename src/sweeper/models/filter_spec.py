"""Filter model.

A filter lists resource types, each with zero or more predicates. Predicates
within a type are combined with logical AND; a type without predicates
matches every resource of that type.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional, Union

from .resource import ResourceDescriptor


@dataclass(frozen=True)
class TagEquals:
    """Resource carries tag `key` with exactly `value`."""

    key: str
    value: str

    def matches(self, resource: ResourceDescriptor) -> bool:
        return resource.tags.get(self.key) == self.value

    def describe(self) -> str:
        return f"tag {self.key}={self.value}"


@dataclass(frozen=True)
class NameMatches:
    """Resource name (or id, when unnamed) matches a regular expression.

    Uses `re.search` semantics; anchor the pattern for a full match.
    """

    pattern: re.Pattern

    def matches(self, resource: ResourceDescriptor) -> bool:
        return self.pattern.search(resource.display_name) is not None

    def describe(self) -> str:
        return f"name ~ /{self.pattern.pattern}/"


@dataclass(frozen=True)
class CreatedBefore:
    """Resource was created strictly before `timestamp`."""

    timestamp: datetime

    def matches(self, resource: ResourceDescriptor) -> bool:
        if resource.created_at is None:
            return False
        return resource.created_at < self.timestamp

    def describe(self) -> str:
        return f"created before {self.timestamp.isoformat()}"


@dataclass(frozen=True)
class CreatedAfter:
    """Resource was created strictly after `timestamp`."""

    timestamp: datetime

    def matches(self, resource: ResourceDescriptor) -> bool:
        if resource.created_at is None:
            return False
        return resource.created_at > self.timestamp

    def describe(self) -> str:
        return f"created after {self.timestamp.isoformat()}"


@dataclass(frozen=True)
class IdIn:
    """Resource id is one of `ids`."""

    ids: frozenset

    def matches(self, resource: ResourceDescriptor) -> bool:
        return resource.resource_id in self.ids

    def describe(self) -> str:
        return f"id in {sorted(self.ids)}"


Predicate = Union[TagEquals, NameMatches, CreatedBefore, CreatedAfter, IdIn]


@dataclass(frozen=True)
class TypeFilter:
    """Filter rule for one resource type.

    Attributes:
        resource_type: Registered resource type id
        predicates: Predicates, AND-combined (empty tuple matches everything)
    """

    resource_type: str
    predicates: tuple = ()

    @property
    def matches_all(self) -> bool:
        return not self.predicates


@dataclass(frozen=True)
class FilterSpec:
    """Ordered collection of per-type filter rules.

    Document order is preserved; it is used as a tie break for output and
    never overrides dependency order.
    """

    filters: tuple = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen = set()
        for type_filter in self.filters:
            if type_filter.resource_type in seen:
                raise ValueError(f"Duplicate resource type in filter spec: {type_filter.resource_type}")
            seen.add(type_filter.resource_type)

    def __iter__(self) -> Iterator[TypeFilter]:
        return iter(self.filters)

    def __len__(self) -> int:
        return len(self.filters)

    @property
    def resource_types(self) -> list[str]:
        return [f.resource_type for f in self.filters]

    def get(self, resource_type: str) -> Optional[TypeFilter]:
        for type_filter in self.filters:
            if type_filter.resource_type == resource_type:
                return type_filter
        return None
