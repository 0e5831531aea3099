"""Blast radius computation for failed diagram nodes.

Models the diagram as a directed dependency graph where an edge
``A -> B`` carries traffic from A to B.  When A fails, B loses its
upstream and is *affected*; the effect propagates transitively
downstream.  The engine reports every affected node, every broken edge,
and the cascade levels used to animate the failure as a domino effect.

Protection always wins: a protected node can neither fail nor be
affected, and propagation stops at it.

Usage
-----
::

    radius = compute_blast_radius(graph, ["db"], protected_node_ids=["cache"])
    for level in radius.levels:
        print(level.depth, level.node_ids)
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from archsim.graph.model import Graph

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CascadeLevel:
    """One BFS hop of a failure cascade.

    Attributes
    ----------
    depth:
        Hop distance from the nearest failed node, 0-based.  Depth 0 holds
        the direct successors of failed nodes.
    node_ids:
        Nodes first affected at this depth.
    edge_ids:
        Edges leaving the previous frontier (failed nodes for depth 0).
    """

    depth: int
    node_ids: list[str] = field(default_factory=list)
    edge_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BlastRadius:
    """Result of :func:`compute_blast_radius`.

    Attributes
    ----------
    failed_node_ids:
        The effective failed set after protected ids were removed.
    affected_node_ids:
        Downstream nodes impacted by the failures, in discovery order.
    broken_edge_ids:
        Edges whose source is failed or affected, in input order.
    levels:
        Affected nodes grouped by hop distance.
    """

    failed_node_ids: list[str] = field(default_factory=list)
    affected_node_ids: list[str] = field(default_factory=list)
    broken_edge_ids: list[str] = field(default_factory=list)
    levels: list[CascadeLevel] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.failed_node_ids

    @property
    def impacted_node_ids(self) -> list[str]:
        """Failed nodes followed by affected nodes."""
        return [*self.failed_node_ids, *self.affected_node_ids]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def compute_blast_radius(
    graph: Graph,
    failed_node_ids: Iterable[str],
    protected_node_ids: Iterable[str] = (),
) -> BlastRadius:
    """Propagate the failure of *failed_node_ids* downstream through *graph*.

    Uses a multi-source breadth-first traversal seeded with every failed
    node at once, so each affected node lands at its distance from the
    *nearest* failure.

    Parameters
    ----------
    graph:
        The diagram snapshot.
    failed_node_ids:
        Nodes that are down.  Duplicates are ignored.
    protected_node_ids:
        Nodes immune to failure.  They are removed from the failed set and
        are never marked affected, which halts propagation through them.

    Returns
    -------
    BlastRadius
        Empty when no (unprotected) node has failed.

    Raises
    ------
    NodeNotFoundError
        If a failed id is not in *graph*.
    """
    protected = set(protected_node_ids)
    failed: list[str] = []
    for node_id in dict.fromkeys(failed_node_ids):
        if node_id not in protected:
            failed.append(node_id)
    graph.require_nodes(failed)

    if not failed:
        return BlastRadius()

    failed_set = set(failed)
    claimed: set[str] = set(failed)
    affected: list[str] = []
    levels: list[CascadeLevel] = []

    frontier = list(failed)
    depth = 0
    while frontier:
        next_frontier: list[str] = []
        level_edge_ids: list[str] = []

        for current_id in frontier:
            for edge in graph.outgoing_edges(current_id):
                # Every edge leaving a failed/affected node is broken,
                # including edges into protected or already-claimed nodes.
                level_edge_ids.append(edge.id)
                target_id = edge.target
                if target_id in claimed or target_id in protected:
                    continue
                claimed.add(target_id)
                affected.append(target_id)
                next_frontier.append(target_id)

        if next_frontier or level_edge_ids:
            levels.append(
                CascadeLevel(depth=depth, node_ids=next_frontier, edge_ids=level_edge_ids)
            )
        frontier = next_frontier
        depth += 1

    broken_sources = failed_set.union(affected)
    broken_edge_ids = [e.id for e in graph.edges if e.source in broken_sources]

    logger.debug(
        "Blast radius of %d failed node(s): %d affected, %d broken edge(s), %d level(s).",
        len(failed),
        len(affected),
        len(broken_edge_ids),
        len(levels),
    )
    return BlastRadius(
        failed_node_ids=failed,
        affected_node_ids=affected,
        broken_edge_ids=broken_edge_ids,
        levels=levels,
    )


__all__ = [
    "BlastRadius",
    "CascadeLevel",
    "compute_blast_radius",
]
