"""Playback controller: the mode state machine that owns simulation state."""
from __future__ import annotations

from archsim.playback.controller import PlaybackController
from archsim.playback.state import (
    VALID_SPEEDS,
    ChaosState,
    FailureState,
    FlowState,
    IdleState,
    ModeState,
    NodeSimulationState,
    RoundTripPhase,
    SimulationMode,
)

__all__ = [
    "VALID_SPEEDS",
    "ChaosState",
    "FailureState",
    "FlowState",
    "IdleState",
    "ModeState",
    "NodeSimulationState",
    "PlaybackController",
    "RoundTripPhase",
    "SimulationMode",
]
