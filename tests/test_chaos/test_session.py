"""Tests for archsim.chaos.session."""
from __future__ import annotations

import pytest

from archsim.cascade.engine import BlastRadius, CascadeLevel
from archsim.chaos.partition import PartitionResult
from archsim.chaos.session import ChaosEvent, ChaosEventType, ChaosSession
from archsim.graph.model import Graph, GraphEdge, GraphNode


@pytest.fixture()
def session() -> ChaosSession:
    return ChaosSession()


def _blast(failed: list[str], affected: list[str], broken: list[str]) -> BlastRadius:
    return BlastRadius(
        failed_node_ids=failed,
        affected_node_ids=affected,
        broken_edge_ids=broken,
        levels=[CascadeLevel(depth=0, node_ids=affected, edge_ids=broken)],
    )


class TestChaosSession:
    def test_initial_state(self, session: ChaosSession) -> None:
        assert session.round == 0
        assert session.events == []
        assert session.last_partition is None

    def test_next_round_counts_from_one(self, session: ChaosSession) -> None:
        assert [session.next_round() for _ in range(3)] == [1, 2, 3]

    def test_apply_failures_accumulates(self, session: ChaosSession) -> None:
        session.apply_failures(["a"], _blast(["a"], ["b", "c"], ["e1"]), frozenset())
        session.apply_failures(["b"], _blast(["a", "b"], ["c", "d"], ["e2"]), frozenset())
        assert session.failed_node_ids == ["a", "b"]
        assert session.affected_node_ids == ["c", "d"]
        assert session.broken_edge_ids == ["e1", "e2"]

    def test_cascade_levels_replaced(self, session: ChaosSession) -> None:
        session.apply_failures(["a"], _blast(["a"], ["b"], ["e1"]), frozenset())
        session.apply_failures(["x"], _blast(["a", "x"], ["y"], ["e9"]), frozenset())
        assert [lvl.node_ids for lvl in session.cascade_levels] == [["y"]]

    def test_protected_nodes_dropped(self, session: ChaosSession) -> None:
        session.apply_failures(["a"], _blast(["a"], ["b", "c"], []), frozenset())
        session.apply_failures(["d"], _blast(["a", "d"], [], []), frozenset({"a", "b"}))
        assert session.failed_node_ids == ["d"]
        assert session.affected_node_ids == ["c"]

    def test_apply_partition_replaces_cut(self, session: ChaosSession) -> None:
        first = PartitionResult(group_a=["a"], group_b=["b"], severed_edge_ids=["e1"])
        second = PartitionResult(group_a=["a", "b"], group_b=["c"], severed_edge_ids=["e2"])
        session.apply_partition(first)
        session.apply_partition(second)
        assert session.severed_edge_ids == ["e2"]
        assert session.last_partition is second

    def test_clear_failures_keeps_round_and_log(self, session: ChaosSession) -> None:
        session.apply_failures(["a"], _blast(["a"], ["b"], ["e1"]), frozenset())
        session.apply_partition(PartitionResult(["a"], ["b"], ["e1"]))
        session.record(ChaosEvent(round=session.next_round(), timestamp=0.0,
                                  type=ChaosEventType.NODE_FAILURE, message="x"))
        session.clear_failures()
        assert session.failed_node_ids == []
        assert session.affected_node_ids == []
        assert session.broken_edge_ids == []
        assert session.severed_edge_ids == []
        assert session.last_partition is None
        assert session.round == 1
        assert len(session.events) == 1

    def test_events_of(self, session: ChaosSession) -> None:
        session.record(ChaosEvent(1, 0.0, ChaosEventType.NODE_FAILURE, "a"))
        session.record(ChaosEvent(2, 1.0, ChaosEventType.PARTITION, "b"))
        session.record(ChaosEvent(3, 2.0, ChaosEventType.NODE_FAILURE, "c"))
        assert [e.round for e in session.events_of(ChaosEventType.NODE_FAILURE)] == [1, 3]

    def test_event_type_values(self) -> None:
        assert ChaosEventType.NODE_FAILURE.value == "node-failure"
        assert ChaosEventType.PARTITION.value == "partition"
        assert ChaosEventType.DEGRADED.value == "degraded"

    def test_prune_drops_ids_missing_from_graph(self, session: ChaosSession) -> None:
        session.apply_failures(["a", "b"], _blast(["a", "b"], ["c"], ["e1", "e2"]), frozenset())
        session.apply_partition(PartitionResult(["a"], ["c"], ["e2"]))
        graph = Graph(
            nodes=[GraphNode(id="b"), GraphNode(id="c")],
            edges=[GraphEdge(id="e1", source="b", target="c")],
        )
        assert session.prune(graph) is True
        assert session.failed_node_ids == ["b"]
        assert session.affected_node_ids == ["c"]
        assert session.broken_edge_ids == ["e1"]
        assert session.severed_edge_ids == []

    def test_prune_without_changes(self, session: ChaosSession) -> None:
        session.apply_failures(["a"], _blast(["a"], [], []), frozenset())
        assert session.prune(Graph(nodes=[GraphNode(id="a")])) is False
        assert session.failed_node_ids == ["a"]
