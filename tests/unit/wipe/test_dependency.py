"""Tests for DependencyResolver and deletion ordering.

Test coverage for type dependency graphs and topological sort using Kahn's algorithm.
"""

from __future__ import annotations

import pytest

from sweeper.errors import OrderingError
from sweeper.wipe.dependency import DependencyResolver, order, waves
from tests.fixtures.catalogs import create_resource


class TestDependencyResolver:
    """Test suite for DependencyResolver class."""

    def test_init_creates_empty_graph(self) -> None:
        """Test initialization creates empty dependency graph."""
        resolver = DependencyResolver()
        assert resolver.graph == {}

    def test_add_dependency_creates_edge(self) -> None:
        """Test adding dependency creates edge in graph."""
        resolver = DependencyResolver()

        # Subnet depends on vpc (vpc must be deleted AFTER subnet)
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")

        assert "aws_vpc" in resolver.graph["aws_subnet"]
        assert resolver.graph["aws_vpc"] == []

    def test_add_dependency_prevents_duplicates(self) -> None:
        """Test adding same dependency twice doesn't create duplicates."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")

        assert resolver.graph["aws_subnet"].count("aws_vpc") == 1

    def test_add_multiple_dependencies_for_same_child(self) -> None:
        """Test an instance can depend on subnet AND security group."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")
        resolver.add_dependency(parent="aws_security_group", child="aws_instance")

        assert resolver.graph["aws_instance"] == ["aws_subnet", "aws_security_group"]
        assert resolver.dependents_of("aws_subnet") == ["aws_instance"]

    def test_compute_deletion_order_simple_chain(self) -> None:
        """Test deletion order for simple dependency chain."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")

        result = resolver.compute_deletion_order(["aws_vpc", "aws_subnet", "aws_instance"])

        assert result == ["aws_instance", "aws_subnet", "aws_vpc"]

    def test_compute_deletion_order_complex_graph(self) -> None:
        """Test deletion order for a diamond-shaped graph."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_vpc", child="aws_security_group")
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")
        resolver.add_dependency(parent="aws_security_group", child="aws_instance")

        result = resolver.compute_deletion_order(["aws_vpc", "aws_subnet", "aws_security_group", "aws_instance"])

        assert result[0] == "aws_instance"
        assert result[-1] == "aws_vpc"

    def test_compute_deletion_order_keeps_input_order_without_dependencies(self) -> None:
        """Test unrelated nodes keep their position as tie break."""
        resolver = DependencyResolver()

        assert resolver.compute_deletion_order(["queue", "topic", "table"]) == ["queue", "topic", "table"]

    def test_compute_deletion_order_ignores_absent_nodes(self) -> None:
        """Test only nodes in the given subset are returned."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")

        assert resolver.compute_deletion_order(["aws_subnet"]) == ["aws_subnet"]

    def test_compute_deletion_order_follows_edges_through_absent_nodes(self) -> None:
        """Test an instance precedes its VPC even when subnets take no part."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")

        assert resolver.compute_deletion_order(["aws_vpc", "aws_instance"]) == ["aws_instance", "aws_vpc"]

    def test_detect_cycle_returns_false_for_acyclic_graph(self) -> None:
        """Test cycle detection returns False for acyclic graph."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")

        assert resolver.has_cycle() is False
        assert resolver.find_cycle() is None

    def test_detect_cycle_returns_true_for_circular_dependency(self) -> None:
        """Test cycle detection names the cycle."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="b", child="a")
        resolver.add_dependency(parent="c", child="b")
        resolver.add_dependency(parent="a", child="c")

        assert resolver.has_cycle() is True
        cycle = resolver.find_cycle()
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_compute_deletion_order_raises_error_on_cycle(self) -> None:
        """Test deletion order computation raises OrderingError when cycle detected."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="b", child="a")
        resolver.add_dependency(parent="a", child="b")

        with pytest.raises(OrderingError, match="Circular dependency") as exc_info:
            resolver.compute_deletion_order(["a", "b"])

        assert set(exc_info.value.cycle) == {"a", "b"}

    def test_get_deletion_tiers_assigns_correct_tiers(self) -> None:
        """Test get_deletion_tiers assigns nodes to correct tiers."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")
        resolver.add_dependency(parent="aws_subnet", child="aws_instance")

        tiers = resolver.get_deletion_tiers(["aws_vpc", "aws_subnet", "aws_instance", "queue"])

        assert tiers[1] == ["aws_instance", "queue"]
        assert tiers[2] == ["aws_subnet"]
        assert tiers[3] == ["aws_vpc"]

    def test_remove_node_drops_edges(self) -> None:
        """Test removing a node removes it as parent too."""
        resolver = DependencyResolver()
        resolver.add_dependency(parent="aws_vpc", child="aws_subnet")

        resolver.remove_node("aws_vpc")

        assert resolver.graph == {"aws_subnet": []}


class TestOrder:
    """Test suite for order() and waves() over matched resources."""

    @pytest.fixture
    def resolver(self) -> DependencyResolver:
        resolver = DependencyResolver()
        resolver.add_dependency(parent="vpc", child="subnet")
        resolver.add_dependency(parent="vpc", child="security_group")
        resolver.add_dependency(parent="subnet", child="instance")
        return resolver

    def test_dependents_precede_dependencies(self, resolver: DependencyResolver) -> None:
        """Test every instance of a dependent type precedes every instance of its dependency."""
        matched = {
            "vpc": [create_resource("vpc", "vpc-1"), create_resource("vpc", "vpc-2")],
            "subnet": [create_resource("subnet", "subnet-1", VpcId="vpc-1")],
            "instance": [create_resource("instance", "i-1"), create_resource("instance", "i-2")],
        }

        ids = [r.resource_id for r in order(matched, resolver)]

        assert ids == ["i-1", "i-2", "subnet-1", "vpc-1", "vpc-2"]

    def test_empty_types_do_not_take_part(self, resolver: DependencyResolver) -> None:
        """Test types with no matches are skipped."""
        matched = {"vpc": [create_resource("vpc", "vpc-1")], "subnet": [], "instance": []}

        assert [r.resource_id for r in order(matched, resolver)] == ["vpc-1"]

    def test_waves_group_independent_types(self, resolver: DependencyResolver) -> None:
        """Test independent types share a wave and dependencies come in later waves."""
        matched = {
            "vpc": [create_resource("vpc", "vpc-1")],
            "security_group": [create_resource("security_group", "sg-1")],
            "subnet": [create_resource("subnet", "subnet-1")],
            "queue": [create_resource("queue", "q-1")],
        }

        result = [[r.resource_id for r in wave] for wave in waves(matched, resolver)]

        assert result == [["sg-1", "subnet-1", "q-1"], ["vpc-1"]]

    def test_order_is_flattened_waves(self, resolver: DependencyResolver) -> None:
        """Test the linear order and the waves agree."""
        matched = {
            "instance": [create_resource("instance", "i-1")],
            "subnet": [create_resource("subnet", "subnet-1")],
            "vpc": [create_resource("vpc", "vpc-1")],
        }

        flattened = [r for wave in waves(matched, resolver) for r in wave]

        assert order(matched, resolver) == flattened

    def test_empty_match(self, resolver: DependencyResolver) -> None:
        """Test nothing matched yields nothing to delete."""
        assert order({}, resolver) == []
        assert waves({}, resolver) == []
