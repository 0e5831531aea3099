"""Branch-aware request flow tracer.

Traces how a request entering the diagram at one node fans out through the
graph.  Traversal is a frontier-by-frontier breadth-first search: every
node of the current depth expands all of its outgoing edges at once, so
parallel branches advance together and can be animated side by side.

A node is claimed by the first depth at which it is reached.  Later edges
into an already-claimed node produce no step, which keeps cyclic graphs
finite and guarantees that no node appears in more than one level.

Usage
-----
::

    path = trace_flow_path(graph, "gateway")
    for level in path.levels:
        print(level.depth, [step.to_node_id for step in level.steps])
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from archsim.graph.model import Graph, GraphEdge

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Path model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SimulationStep:
    """One edge traversal in a flow trace.

    Attributes
    ----------
    edge_id:
        The edge being traversed.
    from_node_id:
        Node the request leaves.
    to_node_id:
        Node the request arrives at.
    protocol:
        Protocol label copied from the edge.
    latency_ms:
        Latency copied from the edge; ``None`` when the edge carries none.
    """

    edge_id: str
    from_node_id: str
    to_node_id: str
    protocol: str | None = None
    latency_ms: float | None = None


@dataclass(frozen=True)
class BranchStep(SimulationStep):
    """A :class:`SimulationStep` tagged with its branch and BFS depth.

    Attributes
    ----------
    branch_id:
        ``"b-<from_node_id>-<edge_id>"``; unique per root-to-node path
        because every node is reached through exactly one claiming edge.
    depth:
        Hop count from the source, 0-based.
    """

    branch_id: str = ""
    depth: int = 0


@dataclass(frozen=True)
class BranchLevel:
    """All steps taken at one BFS depth."""

    depth: int
    steps: list[BranchStep] = field(default_factory=list)

    @property
    def branch_ids(self) -> list[str]:
        return [step.branch_id for step in self.steps]


@dataclass(frozen=True)
class FlowPath:
    """Result of :func:`trace_flow_path`.

    Attributes
    ----------
    node_ids:
        Source first, then every reached node in depth order.
    edge_ids:
        Traversed edges in depth order.
    steps:
        Flat traversal steps for consumers that ignore branching.
    levels:
        Steps grouped by depth.  Empty when the source has no successors.
    """

    node_ids: list[str]
    edge_ids: list[str]
    steps: list[SimulationStep]
    levels: list[BranchLevel] = field(default_factory=list)

    @property
    def source_node_id(self) -> str | None:
        return self.node_ids[0] if self.node_ids else None

    @property
    def level_count(self) -> int:
        return len(self.levels)

    @property
    def max_step_index(self) -> int:
        """Last valid playback index; -1 when there is nothing to step through."""
        if self.levels:
            return len(self.levels) - 1
        return len(self.steps) - 1

    def node_ids_through(self, index: int) -> list[str]:
        """Node ids revealed once playback has reached *index* (inclusive)."""
        if index < 0:
            return []
        revealed = self.node_ids[:1]
        for step in self._steps_through(index):
            revealed.append(step.to_node_id)
        return revealed

    def edge_ids_through(self, index: int) -> list[str]:
        """Edge ids revealed once playback has reached *index* (inclusive)."""
        if index < 0:
            return []
        return [step.edge_id for step in self._steps_through(index)]

    def _steps_through(self, index: int) -> list[SimulationStep]:
        if self.levels:
            steps: list[SimulationStep] = []
            for level in self.levels[: index + 1]:
                steps.extend(level.steps)
            return steps
        return list(self.steps[: index + 1])


# ---------------------------------------------------------------------------
# Tracer
# ---------------------------------------------------------------------------


def _expansions(graph: Graph, node_id: str) -> Iterator[tuple[GraphEdge, str]]:
    """Yield ``(edge, next_node_id)`` for every edge leaving *node_id*.

    Outgoing edges come first in input order, followed by bidirectional
    edges that enter *node_id* (walked backwards).
    """
    for edge in graph.outgoing_edges(node_id):
        yield edge, edge.target
    for edge in graph.incoming_edges(node_id):
        if edge.bidirectional:
            yield edge, edge.source


def trace_flow_path(graph: Graph, source_node_id: str) -> FlowPath:
    """Trace every node reachable from *source_node_id*.

    Parameters
    ----------
    graph:
        The diagram snapshot.
    source_node_id:
        Node where the simulated request enters.

    Returns
    -------
    FlowPath
        Flat and level-grouped traversal.

    Raises
    ------
    NodeNotFoundError
        If *source_node_id* is not in *graph*.
    """
    graph.get_node(source_node_id)

    visited: set[str] = {source_node_id}
    node_ids: list[str] = [source_node_id]
    edge_ids: list[str] = []
    steps: list[SimulationStep] = []
    levels: list[BranchLevel] = []

    frontier: list[str] = [source_node_id]
    depth = 0
    while frontier:
        next_frontier: list[str] = []
        level_steps: list[BranchStep] = []

        for current_id in frontier:
            for edge, next_id in _expansions(graph, current_id):
                if next_id in visited:
                    continue
                visited.add(next_id)
                step = BranchStep(
                    edge_id=edge.id,
                    from_node_id=current_id,
                    to_node_id=next_id,
                    protocol=edge.protocol,
                    latency_ms=edge.latency_ms,
                    branch_id=f"b-{current_id}-{edge.id}",
                    depth=depth,
                )
                level_steps.append(step)
                steps.append(
                    SimulationStep(
                        edge_id=edge.id,
                        from_node_id=current_id,
                        to_node_id=next_id,
                        protocol=edge.protocol,
                        latency_ms=edge.latency_ms,
                    )
                )
                edge_ids.append(edge.id)
                node_ids.append(next_id)
                next_frontier.append(next_id)

        if level_steps:
            levels.append(BranchLevel(depth=depth, steps=level_steps))
        frontier = next_frontier
        depth += 1

    logger.debug(
        "Traced %d node(s) over %d level(s) from %r.",
        len(node_ids),
        len(levels),
        source_node_id,
    )
    return FlowPath(node_ids=node_ids, edge_ids=edge_ids, steps=steps, levels=levels)


__all__ = [
    "BranchLevel",
    "BranchStep",
    "FlowPath",
    "SimulationStep",
    "trace_flow_path",
]
