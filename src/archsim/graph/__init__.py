"""Read-only graph snapshot subpackage."""
from __future__ import annotations

from archsim.graph.loader import load_graph, parse_graph
from archsim.graph.model import (
    DECORATIVE_NODE_TYPES,
    Graph,
    GraphEdge,
    GraphNode,
    GraphReferenceError,
    NodeNotFoundError,
)

__all__ = [
    "DECORATIVE_NODE_TYPES",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "GraphReferenceError",
    "NodeNotFoundError",
    "load_graph",
    "parse_graph",
]
