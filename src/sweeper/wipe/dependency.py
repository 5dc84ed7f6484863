"""Dependency graph construction and deletion ordering.

Resource types declare which other types their instances may reference
(an instance references its subnet, a subnet references its VPC). A
dependent must be deleted before the resource it depends on, so deletion
order is a topological sort of the type graph with dependents first, computed
with Kahn's algorithm.
"""

from __future__ import annotations

import heapq
from typing import Mapping, Optional, Sequence

from ..errors import OrderingError
from ..models.resource import ResourceDescriptor


class DependencyResolver:
    """Dependency graph over resource type ids.

    Attributes:
        graph: Mapping of child -> list of parents it depends on. A parent
            must be deleted AFTER all of its children.
    """

    def __init__(self) -> None:
        self.graph: dict[str, list[str]] = {}

    def add_dependency(self, parent: str, child: str) -> None:
        """Record that `child` depends on `parent`.

        Args:
            parent: Type that must be deleted last (e.g. "aws_vpc")
            child: Type that must be deleted first (e.g. "aws_subnet")
        """
        parents = self.graph.setdefault(child, [])
        if parent not in parents:
            parents.append(parent)
        self.graph.setdefault(parent, [])

    def remove_node(self, node: str) -> None:
        """Remove a node and every edge touching it."""
        self.graph.pop(node, None)
        for parents in self.graph.values():
            if node in parents:
                parents.remove(node)

    def dependents_of(self, parent: str) -> list[str]:
        """Return the nodes that depend on `parent`."""
        return [child for child, parents in self.graph.items() if parent in parents]

    def present_parents(self, node: str, present: set) -> set:
        """Return the parents of `node` within `present`.

        Edges through nodes outside `present` are followed, so a dependent
        still precedes an indirect dependency when the type between them
        takes no part in the run.
        """
        found: set = set()
        stack = list(self.graph.get(node, []))
        seen: set = set()
        while stack:
            parent = stack.pop()
            if parent in seen:
                continue
            seen.add(parent)
            if parent in present:
                found.add(parent)
            else:
                stack.extend(self.graph.get(parent, []))
        found.discard(node)
        return found

    def has_cycle(self) -> bool:
        """Check whether the graph contains a circular dependency."""
        return self.find_cycle() is not None

    def find_cycle(self, nodes: Optional[Sequence[str]] = None) -> Optional[list[str]]:
        """Find one cycle in the graph, optionally restricted to `nodes`.

        Returns:
            The cycle as a path whose first and last element are equal
            (e.g. ["a", "b", "a"]), or None if the graph is acyclic
        """
        allowed = set(nodes) if nodes is not None else set(self.graph)
        visiting: list[str] = []
        on_path: set[str] = set()
        done: set[str] = set()

        def visit(node: str) -> Optional[list[str]]:
            visiting.append(node)
            on_path.add(node)
            for parent in self.graph.get(node, []):
                if parent not in allowed or parent in done:
                    continue
                if parent in on_path:
                    return visiting[visiting.index(parent) :] + [parent]
                cycle = visit(parent)
                if cycle:
                    return cycle
            visiting.pop()
            on_path.discard(node)
            done.add(node)
            return None

        for start in (n for n in self.graph if n in allowed):
            if start not in done:
                cycle = visit(start)
                if cycle:
                    return cycle
        return None

    def compute_deletion_order(self, resources: Sequence[str]) -> list[str]:
        """Compute deletion order for a subset of nodes.

        Dependents come before the nodes they depend on. Nodes that are not
        constrained relative to each other keep their order in `resources`.

        Args:
            resources: Nodes taking part in this run

        Returns:
            Nodes in deletion order

        Raises:
            OrderingError: If the subset contains a circular dependency
        """
        position = {node: index for index, node in enumerate(dict.fromkeys(resources))}
        present = set(position)
        parents_of = {node: self.present_parents(node, present) for node in position}

        # A node becomes deletable once all of its present dependents are gone
        remaining = {node: 0 for node in position}
        for parents in parents_of.values():
            for parent in parents:
                remaining[parent] += 1
        ready = [(position[node], node) for node, count in remaining.items() if count == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            _, node = heapq.heappop(ready)
            order.append(node)
            for parent in parents_of[node]:
                remaining[parent] -= 1
                if remaining[parent] == 0:
                    heapq.heappush(ready, (position[parent], parent))

        if len(order) != len(position):
            cycle = self.find_cycle([node for node in position if node not in order])
            raise OrderingError(cycle or [node for node in position if node not in order])

        return order

    def get_deletion_tiers(self, resources: Sequence[str]) -> dict[int, list[str]]:
        """Group nodes into tiers that can be deleted together.

        Tier 1 holds nodes with no present dependents; tier N holds nodes
        whose present dependents all sit in earlier tiers. Nodes in the same
        tier never depend on each other.

        Raises:
            OrderingError: If the subset contains a circular dependency
        """
        order = self.compute_deletion_order(resources)
        present = set(order)
        tier_of: dict[str, int] = {}

        # Every dependent of a node precedes it in `order`
        for node in order:
            children = [child for child in order if node in self.present_parents(child, present)]
            tier_of[node] = 1 + max((tier_of[child] for child in children), default=0)

        tiers: dict[int, list[str]] = {}
        for node in order:
            tiers.setdefault(tier_of[node], []).append(node)
        return tiers


def order(
    matched: Mapping[str, Sequence[ResourceDescriptor]], resolver: DependencyResolver
) -> list[ResourceDescriptor]:
    """Linearize matched resources so dependents precede their dependencies.

    Only types with at least one matched resource take part. Types are
    emitted tier by tier (see `waves`); within a type, resources keep
    enumeration order.

    Args:
        matched: Resource type -> matched descriptors, in filter document order
        resolver: Type dependency graph

    Returns:
        Flat deletion sequence
    """
    return [resource for wave in waves(matched, resolver) for resource in wave]


def waves(
    matched: Mapping[str, Sequence[ResourceDescriptor]], resolver: DependencyResolver
) -> list[list[ResourceDescriptor]]:
    """Split matched resources into waves that can be deleted concurrently.

    Each wave holds the resources of one deletion tier. Concatenating the
    waves yields a valid deletion order.
    """
    present = [resource_type for resource_type, resources in matched.items() if resources]
    tiers = resolver.get_deletion_tiers(present)
    return [
        [resource for resource_type in tiers[tier] for resource in matched[resource_type]]
        for tier in sorted(tiers)
    ]
