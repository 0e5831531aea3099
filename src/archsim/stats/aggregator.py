"""Derived simulation statistics for the stats panel.

Every function here is pure: statistics are recomputed from the current
flow path, failure overlay or chaos session each time they are asked for
and never cached.

Functions
---------
- flow_stats     Hops, latency, bottleneck, branching and round trip.
- failure_stats  Failed/affected counts and impact percentage.
- chaos_stats    Round count, total failures, MTBF and severed edges.
- compute_stats  Dispatch on the simulation mode.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field

import numpy as np

from archsim.cascade.engine import BlastRadius
from archsim.chaos.session import ChaosEventType, ChaosSession
from archsim.flow.tracer import FlowPath
from archsim.graph.model import Graph

#: Fire-and-forget protocols; a round trip has no return leg over them.
ONE_WAY_PROTOCOLS: frozenset[str] = frozenset({"kafka", "amqp", "rabbitmq", "udp"})

_DEFAULT_PROTOCOL = "http"


@dataclass(frozen=True)
class SimulationStats:
    """Summary numbers for the active mode.

    Fields belonging to other modes keep their zero/``None`` defaults.

    Attributes
    ----------
    total_hops:
        Number of flow steps.
    protocols_used:
        Distinct step protocols in first-seen order.
    path_length:
        Number of nodes on the flow path, source included.
    total_latency_ms:
        Sum of step latencies; steps without latency count as 0.
    bottleneck_edge_id:
        Edge of the slowest step, ``None`` when no step carries latency.
    branch_count:
        Distinct branch ids in the widest level of the flow path.  The
        widest level is used rather than the deepest: in the diamond
        ``A -> B, A -> C, B -> D, C -> D`` the deepest level holds one
        branch yet the flow fans out into two.  0 for an empty path.
    round_trip_latency_ms:
        Forward plus return latency; ``None`` when round trip is off.
    failed_count:
        Failed nodes.
    affected_count:
        Affected (downstream or cut-off) nodes.
    impact_percentage:
        ``affected_count / simulation node count * 100``, 0 for an empty graph.
    broken_edge_count:
        Broken edges.
    chaos_rounds:
        Rounds recorded in the chaos session.
    chaos_total_failures:
        Nodes failed across all node-failure events.
    chaos_mtbf_ms:
        Mean time between node-failure events; ``None`` with fewer than two.
    chaos_severed_edges:
        Edges severed by the current partition.
    """

    total_hops: int = 0
    protocols_used: list[str] = field(default_factory=list)
    path_length: int = 0
    total_latency_ms: float = 0.0
    bottleneck_edge_id: str | None = None
    branch_count: int = 0
    round_trip_latency_ms: float | None = None
    failed_count: int = 0
    affected_count: int = 0
    impact_percentage: float = 0.0
    broken_edge_count: int = 0
    chaos_rounds: int = 0
    chaos_total_failures: int = 0
    chaos_mtbf_ms: float | None = None
    chaos_severed_edges: int = 0

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def impact_percentage(affected_count: int, total_node_count: int) -> float:
    """Return ``affected_count / total_node_count * 100`` rounded to 2 places."""
    if total_node_count <= 0:
        return 0.0
    return round(affected_count / total_node_count * 100.0, 2)


def mean_time_between(timestamps: Sequence[float]) -> float | None:
    """Mean gap between consecutive *timestamps*; ``None`` for fewer than two."""
    if len(timestamps) < 2:
        return None
    return float(np.diff(np.asarray(timestamps, dtype=np.float64)).mean())


def _branch_count(path: FlowPath) -> int:
    if not path.levels:
        return 1 if path.steps else 0
    return max(len(set(level.branch_ids)) for level in path.levels)


def _round_trip_latency(path: FlowPath) -> float:
    if path.levels:
        # Parallel branches of one level overlap, so only the slowest counts.
        forward = sum(
            max((step.latency_ms or 0.0) for step in level.steps)
            for level in path.levels
        )
    else:
        forward = sum(step.latency_ms or 0.0 for step in path.steps)
    back = sum(
        step.latency_ms or 0.0
        for step in path.steps
        if (step.protocol or _DEFAULT_PROTOCOL).lower() not in ONE_WAY_PROTOCOLS
    )
    return float(forward + back)


# ---------------------------------------------------------------------------
# Per-mode statistics
# ---------------------------------------------------------------------------


def flow_stats(path: FlowPath | None, round_trip_enabled: bool = False) -> SimulationStats:
    """Statistics for a traced flow path.

    Parameters
    ----------
    path:
        The current flow path, or ``None`` before a trace exists.
    round_trip_enabled:
        Whether the return leg is simulated.
    """
    if path is None:
        return SimulationStats()

    latencies = np.array(
        [step.latency_ms if step.latency_ms is not None else 0.0 for step in path.steps],
        dtype=np.float64,
    )
    carrying = [i for i, step in enumerate(path.steps) if step.latency_ms is not None]
    bottleneck: str | None = None
    if carrying:
        best = carrying[int(np.argmax(latencies[carrying]))]
        bottleneck = path.steps[best].edge_id

    protocols = list(dict.fromkeys(s.protocol for s in path.steps if s.protocol))
    round_trip: float | None = None
    if round_trip_enabled and path.steps:
        round_trip = _round_trip_latency(path)

    return SimulationStats(
        total_hops=len(path.steps),
        protocols_used=protocols,
        path_length=len(path.node_ids),
        total_latency_ms=float(latencies.sum()),
        bottleneck_edge_id=bottleneck,
        branch_count=_branch_count(path),
        round_trip_latency_ms=round_trip,
    )


def failure_stats(
    graph: Graph,
    failed_node_ids: Sequence[str],
    affected_node_ids: Sequence[str],
    broken_edge_ids: Sequence[str],
) -> SimulationStats:
    """Statistics for a failure-mode blast radius."""
    total = len(graph.simulation_nodes())
    return SimulationStats(
        failed_count=len(failed_node_ids),
        affected_count=len(affected_node_ids),
        impact_percentage=impact_percentage(len(affected_node_ids), total),
        broken_edge_count=len(broken_edge_ids),
    )


def chaos_stats(graph: Graph, session: ChaosSession) -> SimulationStats:
    """Statistics for a chaos session.

    Affected nodes are the accumulated downstream nodes plus the group cut
    off by the current partition, if any.
    """
    affected = list(session.affected_node_ids)
    if session.last_partition is not None:
        affected = list(dict.fromkeys([*affected, *session.last_partition.group_b]))

    failure_events = session.events_of(ChaosEventType.NODE_FAILURE)
    total = len(graph.simulation_nodes())
    return SimulationStats(
        failed_count=len(session.failed_node_ids),
        affected_count=len(affected),
        impact_percentage=impact_percentage(len(affected), total),
        broken_edge_count=len(session.broken_edge_ids),
        chaos_rounds=session.round,
        chaos_total_failures=sum(len(e.node_ids) for e in failure_events),
        chaos_mtbf_ms=mean_time_between([e.timestamp for e in failure_events]),
        chaos_severed_edges=len(session.severed_edge_ids),
    )


def compute_stats(
    mode: str,
    graph: Graph,
    *,
    flow_path: FlowPath | None = None,
    round_trip_enabled: bool = False,
    blast: BlastRadius | None = None,
    session: ChaosSession | None = None,
) -> SimulationStats | None:
    """Dispatch to the statistics function for *mode*.

    Parameters
    ----------
    mode:
        ``"idle"``, ``"flow"``, ``"failure"`` or ``"chaos"``.
    graph:
        The diagram snapshot; provides the node total for impact.
    flow_path, round_trip_enabled:
        Flow mode inputs.
    blast:
        Failure mode blast radius.
    session:
        Chaos mode session.

    Returns
    -------
    SimulationStats | None
        ``None`` in idle mode.

    Raises
    ------
    ValueError
        If *mode* is not a known mode.
    """
    if mode == "idle":
        return None
    if mode == "flow":
        return flow_stats(flow_path, round_trip_enabled)
    if mode == "failure":
        blast = blast if blast is not None else BlastRadius()
        return failure_stats(
            graph, blast.failed_node_ids, blast.affected_node_ids, blast.broken_edge_ids
        )
    if mode == "chaos":
        return chaos_stats(graph, session if session is not None else ChaosSession())
    raise ValueError(f"Unknown simulation mode {mode!r}.")


__all__ = [
    "ONE_WAY_PROTOCOLS",
    "SimulationStats",
    "chaos_stats",
    "compute_stats",
    "failure_stats",
    "flow_stats",
    "impact_percentage",
    "mean_time_between",
]
