"""Read-only graph snapshot consumed by every simulation engine.

The diagram editor owns the real graph; the engines only ever see an
immutable snapshot of it.  Field aliases accept the camelCase keys the
editor emits (``parentId``, ``latencyMs``) as well as the snake_case names.

Usage
-----
::

    graph = Graph(
        nodes=[GraphNode(id="web"), GraphNode(id="api"), GraphNode(id="db")],
        edges=[
            GraphEdge(id="e1", source="web", target="api", protocol="https"),
            GraphEdge(id="e2", source="api", target="db", latency_ms=12.0),
        ],
    )
    graph.validate_references()
    [e.id for e in graph.outgoing_edges("web")]   # ['e1']
"""
from __future__ import annotations

from pydantic import BaseModel, Field, PrivateAttr

#: Node types that only decorate the diagram and never take part in a simulation.
DECORATIVE_NODE_TYPES: frozenset[str] = frozenset({"group", "comment"})


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class NodeNotFoundError(KeyError):
    """Raised when a node id is not present in the graph."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node {node_id!r} is not in the graph.")


class GraphReferenceError(ValueError):
    """Raised when a snapshot has duplicate ids or dangling edge endpoints."""


# ---------------------------------------------------------------------------
# Snapshot models
# ---------------------------------------------------------------------------


class GraphNode(BaseModel):
    """A single diagram node.

    Attributes
    ----------
    id:
        Unique node identifier.
    type:
        Node kind.  ``"group"`` and ``"comment"`` nodes are decorative.
    parent_id:
        Enclosing group node, if any.
    label:
        Human-readable label used in event messages.  Falls back to ``id``.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    id: str
    type: str = "architecture"
    parent_id: str | None = Field(default=None, alias="parentId")
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.id

    @property
    def is_decorative(self) -> bool:
        return self.type in DECORATIVE_NODE_TYPES


class GraphEdge(BaseModel):
    """A directed edge ``source -> target``.

    Attributes
    ----------
    id:
        Unique edge identifier.
    source:
        Id of the node the edge leaves.
    target:
        Id of the node the edge enters.
    protocol:
        Optional transport label (``"http"``, ``"grpc"``, ``"kafka"`` ...).
    latency_ms:
        Optional per-hop latency in milliseconds.
    bidirectional:
        When True the flow tracer may also traverse ``target -> source``.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    id: str
    source: str
    target: str
    protocol: str | None = None
    latency_ms: float | None = Field(default=None, ge=0.0, alias="latencyMs")
    bidirectional: bool = False


class Graph(BaseModel):
    """Immutable node/edge snapshot with adjacency lookups.

    Edge order is significant: every adjacency query returns edges in the
    order they appear in :attr:`edges`, which the tracer relies on as a
    deterministic tie-break.
    """

    model_config = {"frozen": True}

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    _nodes_by_id: dict[str, GraphNode] = PrivateAttr(default_factory=dict)
    _outgoing: dict[str, list[GraphEdge]] = PrivateAttr(default_factory=dict)
    _incoming: dict[str, list[GraphEdge]] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: object) -> None:
        nodes_by_id: dict[str, GraphNode] = {}
        outgoing: dict[str, list[GraphEdge]] = {}
        incoming: dict[str, list[GraphEdge]] = {}
        for node in self.nodes:
            nodes_by_id.setdefault(node.id, node)
        for edge in self.edges:
            outgoing.setdefault(edge.source, []).append(edge)
            incoming.setdefault(edge.target, []).append(edge)
        self._nodes_by_id = nodes_by_id
        self._outgoing = outgoing
        self._incoming = incoming

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_references(self) -> None:
        """Check id uniqueness and that every edge endpoint exists.

        Raises
        ------
        GraphReferenceError
            On the first problem found.
        """
        if len(self._nodes_by_id) != len(self.nodes):
            raise GraphReferenceError("Graph contains duplicate node ids.")
        seen_edges: set[str] = set()
        for edge in self.edges:
            if edge.id in seen_edges:
                raise GraphReferenceError(f"Duplicate edge id {edge.id!r}.")
            seen_edges.add(edge.id)
            for endpoint in (edge.source, edge.target):
                if endpoint not in self._nodes_by_id:
                    raise GraphReferenceError(
                        f"Edge {edge.id!r} references unknown node {endpoint!r}."
                    )

    # ------------------------------------------------------------------
    # Node queries
    # ------------------------------------------------------------------

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes_by_id

    def get_node(self, node_id: str) -> GraphNode:
        """Return the node with *node_id*.

        Raises
        ------
        NodeNotFoundError
            If the node is not in the graph.
        """
        try:
            return self._nodes_by_id[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def require_nodes(self, node_ids: list[str] | tuple[str, ...] | set[str]) -> None:
        """Raise :class:`NodeNotFoundError` for the first unknown id in *node_ids*."""
        for node_id in node_ids:
            if node_id not in self._nodes_by_id:
                raise NodeNotFoundError(node_id)

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def simulation_nodes(self) -> list[GraphNode]:
        """Nodes that can fail, be partitioned, or count towards impact totals."""
        return [node for node in self.nodes if not node.is_decorative]

    # ------------------------------------------------------------------
    # Edge queries
    # ------------------------------------------------------------------

    def outgoing_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges whose source is *node_id*, in input order."""
        return list(self._outgoing.get(node_id, ()))

    def incoming_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges whose target is *node_id*, in input order."""
        return list(self._incoming.get(node_id, ()))

    def connected_edges(self, node_id: str) -> list[GraphEdge]:
        """Edges touching *node_id* in either direction, in input order."""
        return [e for e in self.edges if e.source == node_id or e.target == node_id]

    def successors(self, node_id: str) -> list[str]:
        return [edge.target for edge in self._outgoing.get(node_id, ())]

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        return f"Graph(n_nodes={len(self.nodes)}, n_edges={len(self.edges)})"


__all__ = [
    "DECORATIVE_NODE_TYPES",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "GraphReferenceError",
    "NodeNotFoundError",
]
