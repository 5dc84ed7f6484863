"""Predicate evaluation against resource descriptors."""

from __future__ import annotations

from typing import Iterable, Sequence

from ..models.filter_spec import Predicate
from ..models.resource import ResourceDescriptor


def matches(resource: ResourceDescriptor, predicates: Iterable[Predicate]) -> bool:
    """Check whether a resource satisfies every predicate.

    Evaluation stops at the first predicate that does not hold. An empty
    predicate list matches every resource.

    Args:
        resource: Resource descriptor to test
        predicates: Predicates to AND together

    Returns:
        True if all predicates hold
    """
    return all(predicate.matches(resource) for predicate in predicates)


def filter_resources(
    resources: Iterable[ResourceDescriptor], predicates: Sequence[Predicate]
) -> list[ResourceDescriptor]:
    """Return the resources matching all predicates, keeping enumeration order."""
    return [resource for resource in resources if matches(resource, predicates)]
