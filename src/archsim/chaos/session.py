"""Chaos session state: the round counter, the event log and the
accumulated failure overlay.

A session lives from the moment chaos mode is entered until the mode is
left or reset.  Only :class:`~archsim.chaos.orchestrator.ChaosOrchestrator`
mutates it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from archsim.cascade.engine import BlastRadius, CascadeLevel
from archsim.chaos.partition import PartitionResult
from archsim.graph.model import Graph


class ChaosEventType(str, Enum):
    """Kind of entry in the chaos event log."""

    NODE_FAILURE = "node-failure"   # Random nodes failed this round
    PARTITION = "partition"         # Network split into two groups
    DEGRADED = "degraded"           # Round computation raised; nothing applied


@dataclass(frozen=True)
class ChaosEvent:
    """One chaos event log entry.

    Attributes
    ----------
    round:
        1-based round number; strictly increasing within a session.
    timestamp:
        Milliseconds from the session clock when the round completed.
    type:
        :class:`ChaosEventType`.
    message:
        Human-readable description.
    node_ids:
        Nodes directly involved (newly failed, or both partition groups).
    edge_ids:
        Severed edges for partition events; empty otherwise.
    affected_count:
        Downstream nodes affected (random failure) or size of the cut-off
        group (partition).
    """

    round: int
    timestamp: float
    type: ChaosEventType
    message: str
    node_ids: list[str] = field(default_factory=list)
    edge_ids: list[str] = field(default_factory=list)
    affected_count: int = 0


@dataclass
class ChaosSession:
    """Mutable per-session chaos results."""

    round: int = 0
    events: list[ChaosEvent] = field(default_factory=list)
    failed_node_ids: list[str] = field(default_factory=list)
    affected_node_ids: list[str] = field(default_factory=list)
    broken_edge_ids: list[str] = field(default_factory=list)
    cascade_levels: list[CascadeLevel] = field(default_factory=list)
    severed_edge_ids: list[str] = field(default_factory=list)
    last_partition: PartitionResult | None = None

    def next_round(self) -> int:
        self.round += 1
        return self.round

    def record(self, event: ChaosEvent) -> None:
        self.events.append(event)

    def apply_failures(
        self,
        new_failed_ids: list[str],
        blast: BlastRadius,
        protected_node_ids: frozenset[str],
    ) -> None:
        """Merge a round's failures into the accumulated overlay.

        Failed, affected and broken-edge sets grow by union.  Nodes that
        are failed are dropped from the affected set, and protected nodes
        are dropped from both, so the overlay stays consistent even when
        protection changes mid-session.
        """
        failed = [
            node_id
            for node_id in dict.fromkeys([*self.failed_node_ids, *new_failed_ids])
            if node_id not in protected_node_ids
        ]
        failed_set = set(failed)
        affected = [
            node_id
            for node_id in dict.fromkeys([*self.affected_node_ids, *blast.affected_node_ids])
            if node_id not in failed_set and node_id not in protected_node_ids
        ]
        self.failed_node_ids = failed
        self.affected_node_ids = affected
        self.broken_edge_ids = list(
            dict.fromkeys([*self.broken_edge_ids, *blast.broken_edge_ids])
        )
        self.cascade_levels = list(blast.levels)

    def apply_partition(self, partition: PartitionResult) -> None:
        """Replace the current cut with *partition*'s."""
        self.severed_edge_ids = list(partition.severed_edge_ids)
        self.last_partition = partition

    def prune(self, graph: Graph) -> bool:
        """Drop overlay ids that are no longer in *graph*.

        Returns
        -------
        bool
            True when anything was removed.
        """
        edge_ids = {edge.id for edge in graph.edges}
        failed = [n for n in self.failed_node_ids if graph.has_node(n)]
        affected = [n for n in self.affected_node_ids if graph.has_node(n)]
        broken = [e for e in self.broken_edge_ids if e in edge_ids]
        severed = [e for e in self.severed_edge_ids if e in edge_ids]
        changed = (
            len(failed) != len(self.failed_node_ids)
            or len(affected) != len(self.affected_node_ids)
            or len(broken) != len(self.broken_edge_ids)
            or len(severed) != len(self.severed_edge_ids)
        )
        if changed:
            self.failed_node_ids = failed
            self.affected_node_ids = affected
            self.broken_edge_ids = broken
            self.severed_edge_ids = severed
        return changed

    def clear_failures(self) -> None:
        """Drop the failure overlay; keep the round counter and log."""
        self.failed_node_ids = []
        self.affected_node_ids = []
        self.broken_edge_ids = []
        self.cascade_levels = []
        self.severed_edge_ids = []
        self.last_partition = None

    def events_of(self, event_type: ChaosEventType) -> list[ChaosEvent]:
        return [e for e in self.events if e.type is event_type]


__all__ = [
    "ChaosEvent",
    "ChaosEventType",
    "ChaosSession",
]
