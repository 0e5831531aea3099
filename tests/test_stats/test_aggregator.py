"""Tests for archsim.stats.aggregator."""
from __future__ import annotations

import pytest

from archsim.cascade.engine import compute_blast_radius
from archsim.chaos.partition import PartitionResult
from archsim.chaos.session import ChaosEvent, ChaosEventType, ChaosSession
from archsim.flow.tracer import trace_flow_path
from archsim.graph.model import Graph, GraphEdge, GraphNode
from archsim.stats.aggregator import (
    ONE_WAY_PROTOCOLS,
    SimulationStats,
    chaos_stats,
    compute_stats,
    failure_stats,
    flow_stats,
    impact_percentage,
    mean_time_between,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def diamond() -> Graph:
    """A -> B (http, 10ms), A -> C (grpc, 30ms), B -> D (kafka, 5ms), C -> D (http, 1ms)."""
    return Graph(
        nodes=[GraphNode(id=n) for n in "ABCD"] + [GraphNode(id="zone", type="group")],
        edges=[
            GraphEdge(id="e1", source="A", target="B", protocol="http", latency_ms=10),
            GraphEdge(id="e2", source="A", target="C", protocol="grpc", latency_ms=30),
            GraphEdge(id="e3", source="B", target="D", protocol="kafka", latency_ms=5),
            GraphEdge(id="e4", source="C", target="D", protocol="http", latency_ms=1),
        ],
    )


def _event(round_: int, timestamp: float, kind: ChaosEventType, node_ids: list[str]) -> ChaosEvent:
    return ChaosEvent(
        round=round_, timestamp=timestamp, type=kind, message="", node_ids=node_ids
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_impact_percentage(self) -> None:
        assert impact_percentage(2, 4) == 50.0
        assert impact_percentage(1, 3) == 33.33

    def test_impact_percentage_empty_graph(self) -> None:
        assert impact_percentage(0, 0) == 0.0

    @pytest.mark.parametrize("timestamps", [[], [5.0]])
    def test_mtbf_needs_two_events(self, timestamps: list[float]) -> None:
        assert mean_time_between(timestamps) is None

    def test_mtbf_mean_gap(self) -> None:
        assert mean_time_between([0.0, 1000.0, 3000.0]) == pytest.approx(1500.0)

    def test_one_way_protocols(self) -> None:
        assert "kafka" in ONE_WAY_PROTOCOLS
        assert "http" not in ONE_WAY_PROTOCOLS


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


class TestFlowStats:
    def test_counts(self, diamond: Graph) -> None:
        stats = flow_stats(trace_flow_path(diamond, "A"))
        assert stats.total_hops == 3
        assert stats.path_length == 4
        assert stats.protocols_used == ["http", "grpc", "kafka"]

    def test_total_latency_is_sum_of_steps(self, diamond: Graph) -> None:
        path = trace_flow_path(diamond, "A")
        stats = flow_stats(path)
        assert stats.total_latency_ms == sum(s.latency_ms or 0 for s in path.steps)
        assert stats.total_latency_ms == 45.0

    def test_bottleneck(self, diamond: Graph) -> None:
        assert flow_stats(trace_flow_path(diamond, "A")).bottleneck_edge_id == "e2"

    def test_branch_count(self, diamond: Graph) -> None:
        assert flow_stats(trace_flow_path(diamond, "A")).branch_count == 2

    def test_branch_count_uses_widest_level(self) -> None:
        fan = Graph(
            nodes=[GraphNode(id=n) for n in "ABCDE"],
            edges=[
                GraphEdge(id="e1", source="A", target="B"),
                GraphEdge(id="e2", source="A", target="C"),
                GraphEdge(id="e3", source="A", target="D"),
                GraphEdge(id="e4", source="B", target="E"),
            ],
        )
        path = trace_flow_path(fan, "A")
        assert len(path.levels[-1].steps) == 1
        assert flow_stats(path).branch_count == 3

    def test_round_trip_disabled(self, diamond: Graph) -> None:
        assert flow_stats(trace_flow_path(diamond, "A")).round_trip_latency_ms is None

    def test_round_trip_skips_one_way_return(self, diamond: Graph) -> None:
        stats = flow_stats(trace_flow_path(diamond, "A"), round_trip_enabled=True)
        # Forward: slowest of level 0 (30) + level 1 (5).  Return: http 10 + grpc 30.
        assert stats.round_trip_latency_ms == 75.0

    def test_missing_latency_counts_as_zero(self) -> None:
        graph = Graph(
            nodes=[GraphNode(id="a"), GraphNode(id="b"), GraphNode(id="c")],
            edges=[
                GraphEdge(id="e1", source="a", target="b"),
                GraphEdge(id="e2", source="b", target="c", latency_ms=4),
            ],
        )
        stats = flow_stats(trace_flow_path(graph, "a"))
        assert stats.total_latency_ms == 4.0
        assert stats.bottleneck_edge_id == "e2"

    def test_no_latency_means_no_bottleneck(self) -> None:
        graph = Graph(
            nodes=[GraphNode(id="a"), GraphNode(id="b")],
            edges=[GraphEdge(id="e1", source="a", target="b")],
        )
        stats = flow_stats(trace_flow_path(graph, "a"))
        assert stats.bottleneck_edge_id is None
        assert stats.total_latency_ms == 0.0
        assert stats.protocols_used == []

    def test_source_without_edges(self, diamond: Graph) -> None:
        stats = flow_stats(trace_flow_path(diamond, "D"), round_trip_enabled=True)
        assert stats.total_hops == 0
        assert stats.path_length == 1
        assert stats.branch_count == 0
        assert stats.round_trip_latency_ms is None

    def test_no_path(self) -> None:
        assert flow_stats(None) == SimulationStats()


# ---------------------------------------------------------------------------
# Failure
# ---------------------------------------------------------------------------


class TestFailureStats:
    def test_impact_excludes_decorative_nodes(self, diamond: Graph) -> None:
        radius = compute_blast_radius(diamond, ["B"])
        stats = failure_stats(
            diamond, radius.failed_node_ids, radius.affected_node_ids, radius.broken_edge_ids
        )
        assert stats.failed_count == 1
        assert stats.affected_count == 1
        assert stats.impact_percentage == 25.0
        assert stats.broken_edge_count == 1

    def test_empty_graph(self) -> None:
        stats = failure_stats(Graph(), [], [], [])
        assert stats.impact_percentage == 0.0


# ---------------------------------------------------------------------------
# Chaos
# ---------------------------------------------------------------------------


class TestChaosStats:
    @pytest.fixture()
    def session(self) -> ChaosSession:
        session = ChaosSession(round=4, failed_node_ids=["A", "B"], affected_node_ids=["C"])
        session.events = [
            _event(1, 0.0, ChaosEventType.NODE_FAILURE, ["A"]),
            _event(2, 1000.0, ChaosEventType.NODE_FAILURE, ["B"]),
            _event(3, 1500.0, ChaosEventType.PARTITION, ["A", "B", "C", "D"]),
            _event(4, 3000.0, ChaosEventType.NODE_FAILURE, []),
        ]
        return session

    def test_rounds_and_failures(self, diamond: Graph, session: ChaosSession) -> None:
        stats = chaos_stats(diamond, session)
        assert stats.chaos_rounds == 4
        assert stats.chaos_total_failures == 2
        assert stats.failed_count == 2

    def test_mtbf_uses_only_failure_events(self, diamond: Graph, session: ChaosSession) -> None:
        assert chaos_stats(diamond, session).chaos_mtbf_ms == pytest.approx(1500.0)

    def test_partition_adds_cut_off_group(self, diamond: Graph, session: ChaosSession) -> None:
        session.apply_partition(
            PartitionResult(group_a=["A", "B"], group_b=["C", "D"], severed_edge_ids=["e2", "e3"])
        )
        stats = chaos_stats(diamond, session)
        assert stats.affected_count == 2
        assert stats.impact_percentage == 50.0
        assert stats.chaos_severed_edges == 2

    def test_empty_session(self, diamond: Graph) -> None:
        stats = chaos_stats(diamond, ChaosSession())
        assert stats.chaos_rounds == 0
        assert stats.chaos_mtbf_ms is None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestComputeStats:
    def test_idle(self, diamond: Graph) -> None:
        assert compute_stats("idle", diamond) is None

    def test_flow(self, diamond: Graph) -> None:
        stats = compute_stats("flow", diamond, flow_path=trace_flow_path(diamond, "A"))
        assert stats is not None
        assert stats.total_hops == 3

    def test_failure_without_blast(self, diamond: Graph) -> None:
        stats = compute_stats("failure", diamond)
        assert stats == SimulationStats()

    def test_chaos(self, diamond: Graph) -> None:
        stats = compute_stats("chaos", diamond, session=ChaosSession(round=2))
        assert stats is not None
        assert stats.chaos_rounds == 2

    def test_unknown_mode(self, diamond: Graph) -> None:
        with pytest.raises(ValueError, match="Unknown simulation mode"):
            compute_stats("warp", diamond)

    def test_to_dict(self) -> None:
        data = SimulationStats(total_hops=2).to_dict()
        assert data["total_hops"] == 2
        assert data["chaos_mtbf_ms"] is None
