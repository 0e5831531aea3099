"""Network partition computation for chaos rounds.

A partition splits the diagram into two groups and severs every edge
running between them.  The cut is taken from a random spanning tree of
the largest weakly-connected component: removing one tree edge leaves two
subtrees, so both groups are non-empty and each stays connected through
its own tree edges.
"""
from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from archsim.graph.model import Graph, GraphEdge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionResult:
    """Two disjoint node groups and the edges cut between them.

    Attributes
    ----------
    group_a:
        The larger side of the cut, plus any nodes outside the cut component.
    group_b:
        The other side of the cut.
    severed_edge_ids:
        Every edge with one endpoint in each group, in input order.
    """

    group_a: list[str] = field(default_factory=list)
    group_b: list[str] = field(default_factory=list)
    severed_edge_ids: list[str] = field(default_factory=list)


class _DisjointSet:
    """Union-find with path compression and union by rank."""

    def __init__(self, items: Iterable[str]) -> None:
        self._parent: dict[str, str] = {item: item for item in items}
        self._rank: dict[str, int] = {item: 0 for item in self._parent}

    def find(self, item: str) -> str:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: str, b: str) -> bool:
        """Merge the sets of *a* and *b*; False if they were already joined."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return False
        if self._rank[root_a] < self._rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if self._rank[root_a] == self._rank[root_b]:
            self._rank[root_a] += 1
        return True


def _components(node_ids: list[str], edges: list[GraphEdge]) -> list[list[str]]:
    """Weakly-connected components, each in input node order."""
    dsu = _DisjointSet(node_ids)
    for edge in edges:
        dsu.union(edge.source, edge.target)
    groups: dict[str, list[str]] = {}
    for node_id in node_ids:
        groups.setdefault(dsu.find(node_id), []).append(node_id)
    return list(groups.values())


def _side_of(start: str, tree: dict[str, list[str]], removed: tuple[str, str]) -> set[str]:
    """Nodes reachable from *start* in *tree* without crossing *removed*."""
    side = {start}
    queue: deque[str] = deque([start])
    while queue:
        current = queue.popleft()
        for neighbour in tree[current]:
            if {current, neighbour} == set(removed) or neighbour in side:
                continue
            side.add(neighbour)
            queue.append(neighbour)
    return side


def compute_partition(
    graph: Graph,
    protected_node_ids: Iterable[str],
    rng: random.Random,
) -> PartitionResult | None:
    """Split *graph* into two internally connected groups.

    Parameters
    ----------
    graph:
        The diagram snapshot.  Decorative nodes are ignored.
    protected_node_ids:
        A cut never severs an edge whose endpoints are both protected.
    rng:
        Source of randomness for the spanning tree and cut choice.

    Returns
    -------
    PartitionResult | None
        ``None`` when no valid cut exists: fewer than two simulation nodes,
        no edges inside any component, or every cut would separate two
        protected nodes.
    """
    protected = set(protected_node_ids)
    node_ids = [n.id for n in graph.simulation_nodes()]
    if len(node_ids) < 2:
        return None

    members = set(node_ids)
    edges = [
        e for e in graph.edges
        if e.source in members and e.target in members and e.source != e.target
    ]
    components = _components(node_ids, edges)
    component = max(components, key=len)
    if len(component) < 2:
        logger.debug("No component with an edge to cut.")
        return None

    # Random spanning tree (randomized Kruskal) of the chosen component.
    in_component = set(component)
    component_edges = [e for e in edges if e.source in in_component]
    shuffled = list(component_edges)
    rng.shuffle(shuffled)
    dsu = _DisjointSet(component)
    tree: dict[str, list[str]] = {node_id: [] for node_id in component}
    tree_edges: list[tuple[str, str]] = []
    for edge in shuffled:
        if dsu.union(edge.source, edge.target):
            tree[edge.source].append(edge.target)
            tree[edge.target].append(edge.source)
            tree_edges.append((edge.source, edge.target))

    rng.shuffle(tree_edges)
    for removed in tree_edges:
        side = _side_of(removed[0], tree, removed)
        severed = [
            e for e in component_edges
            if (e.source in side) != (e.target in side)
        ]
        if any(e.source in protected and e.target in protected for e in severed):
            continue

        other = in_component - side
        if len(side) < len(other) or (
            len(side) == len(other) and component[0] not in side
        ):
            side, other = other, side
        group_b = [node_id for node_id in node_ids if node_id in other]
        group_a = [node_id for node_id in node_ids if node_id not in other]
        result = PartitionResult(
            group_a=group_a,
            group_b=group_b,
            severed_edge_ids=[e.id for e in severed],
        )
        logger.debug(
            "Partition: %d | %d node(s), %d severed edge(s).",
            len(group_a),
            len(group_b),
            len(severed),
        )
        return result

    logger.debug("Every candidate cut separates protected nodes; no partition.")
    return None


__all__ = [
    "PartitionResult",
    "compute_partition",
]
