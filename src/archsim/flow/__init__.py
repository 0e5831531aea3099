"""Request flow tracing subpackage."""
from __future__ import annotations

from archsim.flow.tracer import (
    BranchLevel,
    BranchStep,
    FlowPath,
    SimulationStep,
    trace_flow_path,
)

__all__ = [
    "BranchLevel",
    "BranchStep",
    "FlowPath",
    "SimulationStep",
    "trace_flow_path",
]
