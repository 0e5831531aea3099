"""PlaybackController — the single owner of all simulation state.

The controller is a state machine over the top-level mode (idle, flow,
failure, chaos) with a running/paused substate, a playback speed, and a
step cursor used by flow mode's step-by-step debugger.  It invokes the
flow tracer, cascade engine and chaos orchestrator against the graph
supplied by the diagram, and exposes the resulting overlays read-only.

Renderers may read any property but must mutate state only through the
methods below.  Subscribers registered with :meth:`subscribe` are called
after every mutation.

Usage
-----
::

    controller = PlaybackController(graph)
    controller.set_mode("flow")
    controller.start_flow_simulation("gateway")
    controller.set_stepping_mode(True)
    controller.step_forward()
    print(controller.node_states(), controller.stats())
"""
from __future__ import annotations

import logging
import random
from typing import Callable, cast

from archsim.cascade.engine import BlastRadius, CascadeLevel, compute_blast_radius
from archsim.chaos.config import (
    DEFAULT_CHAOS_CONFIG,
    ChaosConfig,
    ChaosSubMode,
    InvalidConfigError,
)
from archsim.chaos.orchestrator import ChaosOrchestrator
from archsim.chaos.scheduler import AsyncioScheduler, Scheduler
from archsim.chaos.session import ChaosEvent
from archsim.flow.tracer import FlowPath, trace_flow_path
from archsim.graph.model import Graph
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
from archsim.stats.aggregator import SimulationStats, compute_stats

logger = logging.getLogger(__name__)

Listener = Callable[["PlaybackController"], None]


class PlaybackController:
    """Own and transition the simulation state for one diagram.

    Parameters
    ----------
    graph:
        A :class:`Graph` snapshot, or a zero-argument callable returning the
        current snapshot (called whenever an engine runs).
    scheduler:
        Timer source for chaos rounds.  Defaults to an
        :class:`AsyncioScheduler` on the running event loop.
    rng:
        Random source shared by chaos sessions.  When omitted each session
        seeds its own from ``ChaosConfig.random_seed``.
    clock:
        Millisecond clock for chaos event timestamps.
    """

    def __init__(
        self,
        graph: Graph | Callable[[], Graph],
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._graph_provider: Callable[[], Graph] = (
            graph if callable(graph) else (lambda: graph)
        )
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._rng = rng
        self._clock = clock
        self._listeners: list[Listener] = []
        self._closed = False
        self._state: ModeState = IdleState()
        self._is_running = False
        self._speed = 1.0
        self._round_trip_enabled = True
        self._chaos_config = DEFAULT_CHAOS_CONFIG

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def graph(self) -> Graph:
        return self._graph_provider()

    @property
    def state(self) -> ModeState:
        return self._state

    @property
    def mode(self) -> SimulationMode:
        return self._state.mode

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def round_trip_enabled(self) -> bool:
        return self._round_trip_enabled

    @property
    def chaos_config(self) -> ChaosConfig:
        return self._chaos_config

    @property
    def source_node_id(self) -> str | None:
        return self._state.source_node_id if isinstance(self._state, FlowState) else None

    @property
    def flow_path(self) -> FlowPath | None:
        return self._state.flow_path if isinstance(self._state, FlowState) else None

    @property
    def current_step_index(self) -> int:
        return self._state.current_step_index if isinstance(self._state, FlowState) else -1

    @property
    def stepping_mode(self) -> bool:
        return isinstance(self._state, FlowState) and self._state.stepping_mode

    @property
    def round_trip_phase(self) -> RoundTripPhase | None:
        return self._state.round_trip_phase if isinstance(self._state, FlowState) else None

    @property
    def failed_node_ids(self) -> list[str]:
        if isinstance(self._state, FailureState):
            return list(self._state.failed_node_ids)
        if isinstance(self._state, ChaosState):
            return list(self._state.session.failed_node_ids)
        return []

    @property
    def affected_node_ids(self) -> list[str]:
        if isinstance(self._state, FailureState):
            return list(self._state.blast.affected_node_ids)
        if isinstance(self._state, ChaosState):
            return list(self._state.session.affected_node_ids)
        return []

    @property
    def affected_edge_ids(self) -> list[str]:
        if isinstance(self._state, FailureState):
            return list(self._state.blast.broken_edge_ids)
        if isinstance(self._state, ChaosState):
            return list(self._state.session.broken_edge_ids)
        return []

    @property
    def cascade_levels(self) -> list[CascadeLevel]:
        if isinstance(self._state, FailureState):
            return list(self._state.blast.levels)
        if isinstance(self._state, ChaosState):
            return list(self._state.session.cascade_levels)
        return []

    @property
    def chaos_round(self) -> int:
        return self._state.session.round if isinstance(self._state, ChaosState) else 0

    @property
    def chaos_event_log(self) -> list[ChaosEvent]:
        if isinstance(self._state, ChaosState):
            return list(self._state.session.events)
        return []

    @property
    def chaos_is_auto_running(self) -> bool:
        return (
            isinstance(self._state, ChaosState)
            and self._state.orchestrator is not None
            and self._state.orchestrator.is_running
        )

    @property
    def severed_edge_ids(self) -> list[str]:
        if isinstance(self._state, ChaosState):
            return list(self._state.session.severed_edge_ids)
        return []

    @property
    def active_path_node_ids(self) -> list[str]:
        """Nodes to highlight on the flow path.

        In stepping mode only the nodes revealed up to the step cursor are
        returned.
        """
        path = self.flow_path
        if path is None:
            return []
        if self.stepping_mode:
            return path.node_ids_through(self.current_step_index)
        return list(path.node_ids)

    @property
    def active_path_edge_ids(self) -> list[str]:
        path = self.flow_path
        if path is None:
            return []
        if self.stepping_mode:
            return path.edge_ids_through(self.current_step_index)
        return list(path.edge_ids)

    # ------------------------------------------------------------------
    # Overlays and stats
    # ------------------------------------------------------------------

    def node_state(self, node_id: str) -> NodeSimulationState | None:
        """Overlay tag for *node_id* in the current mode.

        Precedence: protected, failed, affected in failure and chaos mode;
        source, active in flow mode.
        """
        state = self._state
        if isinstance(state, FlowState):
            if node_id == state.source_node_id and state.flow_path is not None:
                return NodeSimulationState.SOURCE
            if node_id in self.active_path_node_ids:
                return NodeSimulationState.ACTIVE
            return None
        if isinstance(state, (FailureState, ChaosState)):
            if self._chaos_config.is_protected(node_id):
                return NodeSimulationState.PROTECTED
            if node_id in self.failed_node_ids:
                return NodeSimulationState.FAILED
            if node_id in self.affected_node_ids:
                return NodeSimulationState.AFFECTED
        return None

    def node_states(self) -> dict[str, NodeSimulationState]:
        """Overlay tags for every node that has one."""
        if isinstance(self._state, IdleState):
            return {}
        states: dict[str, NodeSimulationState] = {}
        for node in self.graph.nodes:
            tag = self.node_state(node.id)
            if tag is not None:
                states[node.id] = tag
        return states

    def stats(self) -> SimulationStats | None:
        """Recompute statistics for the current mode; ``None`` when idle."""
        state = self._state
        if isinstance(state, IdleState):
            return None
        return compute_stats(
            self.mode.value,
            self.graph,
            flow_path=self.flow_path,
            round_trip_enabled=self._round_trip_enabled,
            blast=state.blast if isinstance(state, FailureState) else None,
            session=state.session if isinstance(state, ChaosState) else None,
        )

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every state change.  Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Simulation listener %r failed.", listener)

    # ------------------------------------------------------------------
    # Mode transitions
    # ------------------------------------------------------------------

    def set_mode(self, mode: SimulationMode | str) -> None:
        """Enter *mode*, discarding every other mode's results.

        Re-entering the current mode is a no-op.  Entering ``idle`` resets
        the controller to its initial state, including chaos configuration
        and speed.
        """
        mode = SimulationMode(mode)
        if mode is self.mode:
            return
        self._teardown_state()
        self._is_running = False
        if mode is SimulationMode.IDLE:
            self._restore_defaults()
            self._state = IdleState()
        elif mode is SimulationMode.FLOW:
            self._state = FlowState()
        elif mode is SimulationMode.FAILURE:
            self._state = FailureState()
        else:
            self._state = self._new_chaos_state()
        logger.info("Simulation mode -> %s", mode.value)
        self._notify()

    def reset(self) -> None:
        """Cancel any chaos timer and return to the initial idle state."""
        self._teardown_state()
        self._restore_defaults()
        self._state = IdleState()
        self._is_running = False
        logger.debug("Simulation reset.")
        self._notify()

    def close(self) -> None:
        """Tear down: cancel timers and drop subscribers.  Idempotent."""
        if self._closed:
            return
        self._teardown_state()
        self._state = IdleState()
        self._is_running = False
        self._listeners.clear()
        self._closed = True

    def _restore_defaults(self) -> None:
        self._speed = 1.0
        self._round_trip_enabled = True
        self._chaos_config = DEFAULT_CHAOS_CONFIG

    def _teardown_state(self) -> None:
        if isinstance(self._state, ChaosState) and self._state.orchestrator is not None:
            self._state.orchestrator.close()

    def _new_chaos_state(self) -> ChaosState:
        state = ChaosState()
        state.orchestrator = ChaosOrchestrator(
            graph_provider=self._graph_provider,
            config_provider=lambda: self._chaos_config,
            scheduler=self._scheduler,
            session=state.session,
            rng=self._rng,
            clock=self._clock,
            on_round=lambda _event: self._notify(),
        )
        return state

    def _require_mode(self, mode: SimulationMode) -> None:
        if self.mode is not mode:
            self.set_mode(mode)

    # Narrowing helpers; call only after _require_mode() for the matching mode.

    def _flow_state(self) -> FlowState:
        return cast(FlowState, self._state)

    def _failure_state(self) -> FailureState:
        return cast(FailureState, self._state)

    def _chaos_orchestrator(self) -> ChaosOrchestrator:
        state = cast(ChaosState, self._state)
        if state.orchestrator is None:
            raise RuntimeError("Chaos state has no orchestrator attached.")
        return state.orchestrator

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def pause(self) -> None:
        if isinstance(self._state, ChaosState) and self._state.orchestrator is not None:
            self._state.orchestrator.stop()
        self._is_running = False
        self._notify()

    def resume(self) -> None:
        if isinstance(self._state, IdleState):
            logger.warning("Nothing to resume in idle mode.")
            return
        if isinstance(self._state, ChaosState) and self._state.orchestrator is not None:
            self._state.orchestrator.start(run_first_round=False)
        self._is_running = True
        self._notify()

    def stop(self) -> None:
        """Stop playback but keep the mode and the selection.

        Flow mode keeps the selected source so the trace can be re-run with
        ``start_flow_simulation()``; failure mode keeps the failed nodes;
        chaos mode cancels its timer and keeps the session.
        """
        state = self._state
        if isinstance(state, FlowState):
            state.flow_path = None
            state.current_step_index = -1
            state.round_trip_phase = None
        elif isinstance(state, ChaosState) and state.orchestrator is not None:
            state.orchestrator.stop()
        self._is_running = False
        self._notify()

    def set_speed(self, speed: float) -> None:
        """Set the playback speed multiplier.

        Only renderers read the speed; engine output never depends on it.

        Raises
        ------
        InvalidConfigError
            If *speed* is not one of :data:`VALID_SPEEDS`.
        """
        if speed not in VALID_SPEEDS:
            raise InvalidConfigError(f"speed must be one of {VALID_SPEEDS}, got {speed!r}.")
        self._speed = float(speed)
        self._notify()

    # ------------------------------------------------------------------
    # Flow mode
    # ------------------------------------------------------------------

    def select_source(self, node_id: str) -> None:
        """Remember *node_id* as the flow source without starting a trace.

        Raises
        ------
        NodeNotFoundError
            If the node is not in the graph.
        """
        self._require_mode(SimulationMode.FLOW)
        self.graph.get_node(node_id)
        state = self._flow_state()
        state.source_node_id = node_id
        self._notify()

    def start_flow_simulation(
        self,
        source_node_id: str | None = None,
        path: FlowPath | None = None,
    ) -> FlowPath:
        """Start a flow simulation from *source_node_id*.

        Parameters
        ----------
        source_node_id:
            Source node.  Defaults to the previously selected source.
        path:
            A precomputed trace.  Traced from the graph when omitted.

        Returns
        -------
        FlowPath
            The path now being played.

        Raises
        ------
        NodeNotFoundError
            If the source is not in the graph; nothing is started.
        ValueError
            If no source was given or previously selected.
        """
        self._require_mode(SimulationMode.FLOW)
        state = self._flow_state()

        source = source_node_id or state.source_node_id
        if source is None:
            raise ValueError("No source node selected for the flow simulation.")
        if path is None:
            path = trace_flow_path(self.graph, source)
        else:
            self.graph.get_node(source)

        state.source_node_id = source
        state.flow_path = path
        state.current_step_index = min(0, path.max_step_index)
        state.round_trip_phase = (
            RoundTripPhase.REQUEST if self._round_trip_enabled else None
        )
        self._is_running = True
        logger.debug("Flow simulation started from %r (%d steps).", source, len(path.steps))
        self._notify()
        return path

    def set_stepping_mode(self, enabled: bool) -> None:
        if not isinstance(self._state, FlowState):
            return
        self._state.stepping_mode = enabled
        self._notify()

    def set_current_step_index(self, index: int) -> None:
        """Move the step cursor to *index*; out-of-range values are ignored."""
        state = self._state
        if not isinstance(state, FlowState) or state.flow_path is None:
            return
        if not -1 <= index <= state.flow_path.max_step_index:
            logger.warning(
                "Ignoring step index %d outside [-1, %d].", index, state.flow_path.max_step_index
            )
            return
        state.current_step_index = index
        self._notify()

    def step_forward(self) -> None:
        """Advance one level.  No-op unless stepping mode is on."""
        state = self._state
        if not isinstance(state, FlowState) or not state.stepping_mode:
            return
        if state.flow_path is None:
            return
        if state.current_step_index < state.flow_path.max_step_index:
            state.current_step_index += 1
            self._is_running = True
            self._notify()

    def step_backward(self) -> None:
        """Go back one level.  No-op unless stepping mode is on."""
        state = self._state
        if not isinstance(state, FlowState) or not state.stepping_mode:
            return
        if state.current_step_index > 0:
            state.current_step_index -= 1
            self._notify()

    def toggle_round_trip(self) -> None:
        self._round_trip_enabled = not self._round_trip_enabled
        if not self._round_trip_enabled and isinstance(self._state, FlowState):
            self._state.round_trip_phase = None
        self._notify()

    def set_round_trip_phase(self, phase: RoundTripPhase | str | None) -> None:
        """Set the round-trip leg; ignored outside flow mode or when disabled."""
        state = self._state
        if not isinstance(state, FlowState):
            return
        if phase is not None and not self._round_trip_enabled:
            logger.warning("Round trip is disabled; ignoring phase %r.", phase)
            return
        state.round_trip_phase = RoundTripPhase(phase) if phase is not None else None
        self._notify()

    def toggle_round_trip_phase(self) -> None:
        """Flip request <-> response, starting from request."""
        state = self._state
        if not isinstance(state, FlowState) or not self._round_trip_enabled:
            return
        if state.round_trip_phase is RoundTripPhase.REQUEST:
            state.round_trip_phase = RoundTripPhase.RESPONSE
        else:
            state.round_trip_phase = RoundTripPhase.REQUEST
        self._notify()

    # ------------------------------------------------------------------
    # Failure mode
    # ------------------------------------------------------------------

    def toggle_node_failure(self, node_id: str) -> BlastRadius:
        """Mark *node_id* failed (or healthy again) and recompute the blast radius.

        Raises
        ------
        NodeNotFoundError
            If the node is not in the graph.
        """
        self._require_mode(SimulationMode.FAILURE)
        state = self._failure_state()
        self.graph.get_node(node_id)
        if node_id in state.failed_node_ids:
            state.failed_node_ids.remove(node_id)
        else:
            state.failed_node_ids.append(node_id)
        self._recompute_blast(state)
        self._notify()
        return state.blast

    def start_failure_simulation(self) -> BlastRadius:
        self._require_mode(SimulationMode.FAILURE)
        state = self._failure_state()
        self._recompute_blast(state)
        self._is_running = True
        self._notify()
        return state.blast

    def _recompute_blast(self, state: FailureState) -> None:
        graph = self.graph
        # Nodes deleted from the diagram since they were selected drop out.
        state.failed_node_ids = [n for n in state.failed_node_ids if graph.has_node(n)]
        state.blast = compute_blast_radius(
            graph, state.failed_node_ids, self._chaos_config.protected_node_ids
        )

    # ------------------------------------------------------------------
    # Chaos mode
    # ------------------------------------------------------------------

    def set_chaos_config(self, **changes: object) -> ChaosConfig:
        """Update chaos settings.

        Raises
        ------
        InvalidConfigError
            If the result is invalid; the previous configuration is kept.
        """
        previous = self._chaos_config
        self._chaos_config = previous.updated(**changes)
        self._after_config_change(previous)
        return self._chaos_config

    def set_chaos_sub_mode(self, sub_mode: ChaosSubMode | str) -> None:
        self.set_chaos_config(sub_mode=sub_mode)

    def toggle_protected_node(self, node_id: str) -> None:
        previous = self._chaos_config
        protected = set(previous.protected_node_ids)
        protected.symmetric_difference_update({node_id})
        self._chaos_config = previous.with_protected(protected)
        self._after_config_change(previous)

    def _after_config_change(self, previous: ChaosConfig) -> None:
        state = self._state
        if isinstance(state, FailureState):
            self._recompute_blast(state)
        elif isinstance(state, ChaosState) and state.orchestrator is not None:
            if (
                previous.interval_ms != self._chaos_config.interval_ms
                or previous.sub_mode is not self._chaos_config.sub_mode
            ):
                state.orchestrator.reschedule()
        self._notify()

    def start_chaos(self, run_first_round: bool = True) -> None:
        """Enter chaos mode if needed and start the round timer."""
        self._require_mode(SimulationMode.CHAOS)
        orchestrator = self._chaos_orchestrator()
        self._is_running = True
        orchestrator.start(run_first_round=run_first_round)
        self._notify()

    def stop_chaos(self) -> None:
        state = self._state
        if isinstance(state, ChaosState) and state.orchestrator is not None:
            state.orchestrator.stop()
        self._is_running = False
        self._notify()

    def run_chaos_round(self) -> ChaosEvent | None:
        """Run a single chaos round immediately, without the timer."""
        self._require_mode(SimulationMode.CHAOS)
        return self._chaos_orchestrator().run_round()

    def clear_chaos_failures(self) -> None:
        """Clear the accumulated chaos overlay; keep the round counter and log."""
        if isinstance(self._state, ChaosState):
            self._state.session.clear_failures()
            self._notify()

    def __repr__(self) -> str:
        return (
            f"PlaybackController(mode={self.mode.value}, running={self._is_running}, "
            f"speed={self._speed})"
        )


__all__ = ["PlaybackController"]
