"""Resource catalog.

Maps resource type ids to their list/delete capabilities and declared
dependency edges. The engine addresses every type through this table and
never special-cases a type by name.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from ..errors import EnumerationError, OrderingError
from ..models.resource import ResourceDescriptor
from .dependency import DependencyResolver

logger = logging.getLogger(__name__)

Lister = Callable[[], Iterable[ResourceDescriptor]]
Deleter = Callable[[ResourceDescriptor], None]


@dataclass(frozen=True)
class ResourceType:
    """Registered capability for one resource type.

    Attributes:
        resource_type: Type id (e.g. "aws_subnet")
        lister: Returns every live resource of this type; must not mutate anything
        deleter: Deletes one resource; raises DeletionError on failure
        depends_on: Types whose instances this type's instances may reference
    """

    resource_type: str
    lister: Lister
    deleter: Deleter
    depends_on: tuple = ()


@dataclass
class EnumerationResult:
    """Resources listed per type plus the types that failed to list."""

    resources: dict
    errors: list


class ResourceCatalog:
    """Registry of resource types.

    Attributes:
        resolver: Dependency graph over registered types, validated on every
            registration
    """

    def __init__(self) -> None:
        self._types: dict[str, ResourceType] = {}
        self.resolver = DependencyResolver()

    def register(
        self,
        resource_type: str,
        lister: Lister,
        deleter: Deleter,
        depends_on: Sequence[str] = (),
    ) -> ResourceType:
        """Register a resource type.

        Args:
            resource_type: Type id, unique within the catalog
            lister: List capability
            deleter: Delete capability
            depends_on: Types this type depends on (deleted after it). Types
                registered later may be named here.

        Returns:
            The registered ResourceType

        Raises:
            ValueError: If the type is already registered
            OrderingError: If the new edges introduce a dependency cycle; the
                registration is rolled back
        """
        if resource_type in self._types:
            raise ValueError(f"Resource type already registered: {resource_type}")

        previous_graph = {child: list(parents) for child, parents in self.resolver.graph.items()}

        self.resolver.graph.setdefault(resource_type, [])
        for dependency in depends_on:
            self.resolver.add_dependency(parent=dependency, child=resource_type)

        cycle = self.resolver.find_cycle()
        if cycle:
            self.resolver.graph = previous_graph
            raise OrderingError(cycle)

        entry = ResourceType(
            resource_type=resource_type,
            lister=lister,
            deleter=deleter,
            depends_on=tuple(depends_on),
        )
        self._types[resource_type] = entry
        logger.debug(f"Registered resource type {resource_type} (depends on: {list(depends_on) or 'nothing'})")
        return entry

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self._types

    def __len__(self) -> int:
        return len(self._types)

    @property
    def resource_types(self) -> list[str]:
        """Registered type ids in registration order."""
        return list(self._types)

    def get(self, resource_type: str) -> ResourceType:
        """Return the registration for a type.

        Raises:
            KeyError: If the type is not registered
        """
        try:
            return self._types[resource_type]
        except KeyError:
            raise KeyError(f"Unknown resource type: {resource_type}") from None

    def edges(self) -> list[tuple[str, str]]:
        """Declared dependency edges as (dependent, dependency) pairs."""
        return [(entry.resource_type, dependency) for entry in self._types.values() for dependency in entry.depends_on]

    def list(self, resource_type: str) -> list[ResourceDescriptor]:
        """List live resources of one type.

        Raises:
            KeyError: If the type is not registered
            EnumerationError: If the lister fails
        """
        entry = self.get(resource_type)
        try:
            return list(entry.lister())
        except EnumerationError:
            raise
        except Exception as e:
            raise EnumerationError(resource_type, str(e)) from e

    def delete(self, resource: ResourceDescriptor) -> None:
        """Delete one resource through its type's deleter.

        Raises:
            KeyError: If the resource's type is not registered
            DeletionError: If the deleter fails
        """
        self.get(resource.resource_type).deleter(resource)

    def enumerate(self, resource_types: Sequence[str], workers: Optional[int] = None) -> EnumerationResult:
        """List several types concurrently.

        A type whose listing fails is left out of the result and its error is
        logged as a warning; the other types are unaffected.

        Args:
            resource_types: Types to list
            workers: Thread pool size (default: one per type, at most 8)

        Returns:
            EnumerationResult with resources keyed by type in the given order
        """
        if not resource_types:
            return EnumerationResult(resources={}, errors=[])

        pool_size = workers or min(len(resource_types), 8)
        resources: dict[str, list[ResourceDescriptor]] = {}
        errors: list[EnumerationError] = []

        with ThreadPoolExecutor(max_workers=pool_size) as pool:
            futures = {resource_type: pool.submit(self.list, resource_type) for resource_type in resource_types}

            for resource_type, future in futures.items():
                try:
                    resources[resource_type] = future.result()
                    logger.debug(f"Listed {len(resources[resource_type])} {resource_type} resources")
                except EnumerationError as e:
                    logger.warning(str(e))
                    errors.append(e)

        return EnumerationResult(resources=resources, errors=errors)
