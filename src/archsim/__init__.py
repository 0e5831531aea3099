"""archsim — Graph simulation engine for architecture diagrams.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick-start example
-------------------
>>> import archsim
>>> archsim.__version__
'0.1.0'
>>> graph = archsim.Graph(
...     nodes=[archsim.GraphNode(id="a"), archsim.GraphNode(id="b")],
...     edges=[archsim.GraphEdge(id="e1", source="a", target="b")],
... )
>>> archsim.trace_flow_path(graph, "a").node_ids
['a', 'b']

Subpackages
-----------
graph:
    Read-only graph snapshot models and JSON/YAML loading.
flow:
    Branch-aware request flow tracer.
cascade:
    Blast radius computation with protected nodes.
chaos:
    Chaos configuration, random failure selection, network partitions,
    schedulers and the round orchestrator.
playback:
    The playback controller that owns all simulation state.
stats:
    Derived statistics for the active mode.
"""
from __future__ import annotations

__version__: str = "0.1.0"

# -- Graph ----------------------------------------------------------------
from archsim.graph import (
    Graph,
    GraphEdge,
    GraphNode,
    GraphReferenceError,
    NodeNotFoundError,
    load_graph,
    parse_graph,
)

# -- Engines --------------------------------------------------------------
from archsim.flow import FlowPath, trace_flow_path
from archsim.cascade import BlastRadius, CascadeLevel, compute_blast_radius

# -- Chaos ----------------------------------------------------------------
from archsim.chaos import (
    AsyncioScheduler,
    ChaosConfig,
    ChaosEvent,
    ChaosEventType,
    ChaosOrchestrator,
    ChaosSession,
    ChaosSubMode,
    InvalidConfigError,
    ManualScheduler,
    PartitionResult,
    compute_partition,
)

# -- Playback -------------------------------------------------------------
from archsim.playback import (
    NodeSimulationState,
    PlaybackController,
    RoundTripPhase,
    SimulationMode,
)

# -- Stats ----------------------------------------------------------------
from archsim.stats import SimulationStats, compute_stats

__all__ = [
    "__version__",
    # Graph
    "Graph",
    "GraphEdge",
    "GraphNode",
    "GraphReferenceError",
    "NodeNotFoundError",
    "load_graph",
    "parse_graph",
    # Engines
    "BlastRadius",
    "CascadeLevel",
    "FlowPath",
    "compute_blast_radius",
    "trace_flow_path",
    # Chaos
    "AsyncioScheduler",
    "ChaosConfig",
    "ChaosEvent",
    "ChaosEventType",
    "ChaosOrchestrator",
    "ChaosSession",
    "ChaosSubMode",
    "InvalidConfigError",
    "ManualScheduler",
    "PartitionResult",
    "compute_partition",
    # Playback
    "NodeSimulationState",
    "PlaybackController",
    "RoundTripPhase",
    "SimulationMode",
    # Stats
    "SimulationStats",
    "compute_stats",
]
