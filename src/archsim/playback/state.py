"""Mode states for the playback controller.

Each simulation mode carries only its own fields.  Entering a mode builds
a fresh state object of that mode's type, so results from a previous mode
cannot leak into the next one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from archsim.cascade.engine import BlastRadius
from archsim.chaos.orchestrator import ChaosOrchestrator
from archsim.chaos.session import ChaosSession
from archsim.flow.tracer import FlowPath

#: Playback speed multipliers accepted by :meth:`PlaybackController.set_speed`.
VALID_SPEEDS: tuple[float, ...] = (0.25, 0.5, 1.0, 2.0, 4.0)


class SimulationMode(str, Enum):
    """Top-level simulation mode."""

    IDLE = "idle"
    FLOW = "flow"
    FAILURE = "failure"
    CHAOS = "chaos"


class RoundTripPhase(str, Enum):
    """Leg of a round-trip flow animation."""

    REQUEST = "request"
    RESPONSE = "response"


class NodeSimulationState(str, Enum):
    """Overlay tag a renderer applies to a node.  ``None`` means no overlay."""

    SOURCE = "source"
    ACTIVE = "active"
    FAILED = "failed"
    AFFECTED = "affected"
    PROTECTED = "protected"


@dataclass
class IdleState:
    mode: ClassVar[SimulationMode] = SimulationMode.IDLE


@dataclass
class FlowState:
    """Flow mode: a traced path and the step cursor over it."""

    mode: ClassVar[SimulationMode] = SimulationMode.FLOW

    source_node_id: str | None = None
    flow_path: FlowPath | None = None
    current_step_index: int = -1
    stepping_mode: bool = False
    round_trip_phase: RoundTripPhase | None = None


@dataclass
class FailureState:
    """Failure mode: the user-selected failed nodes and their blast radius."""

    mode: ClassVar[SimulationMode] = SimulationMode.FAILURE

    failed_node_ids: list[str] = field(default_factory=list)
    blast: BlastRadius = field(default_factory=BlastRadius)


@dataclass
class ChaosState:
    """Chaos mode: the session overlay and the orchestrator driving it."""

    mode: ClassVar[SimulationMode] = SimulationMode.CHAOS

    session: ChaosSession = field(default_factory=ChaosSession)
    orchestrator: ChaosOrchestrator | None = None


ModeState = Union[IdleState, FlowState, FailureState, ChaosState]


__all__ = [
    "VALID_SPEEDS",
    "ChaosState",
    "FailureState",
    "FlowState",
    "IdleState",
    "ModeState",
    "NodeSimulationState",
    "RoundTripPhase",
    "SimulationMode",
]
