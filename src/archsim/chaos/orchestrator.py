"""ChaosOrchestrator — timer-driven randomized failure injection.

Each tick of the scheduler runs exactly one chaos round against the
current graph snapshot:

- **random-failure**: pick random unprotected nodes, compute the blast
  radius of every node failed so far, and grow the session overlay.
- **network-partition**: cut the graph into two groups and replace the
  previously severed edges with the new cut.

Rounds run synchronously on the scheduler's thread.  A round never
overlaps another (``_in_round`` guard) and a tick delivered after
:meth:`ChaosOrchestrator.stop` is ignored (generation check).  A round that
raises is logged, recorded as a ``degraded`` event, and the timer keeps
going.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Callable

from archsim.cascade.engine import compute_blast_radius
from archsim.chaos.config import ChaosConfig, ChaosSubMode
from archsim.chaos.partition import compute_partition
from archsim.chaos.scheduler import CancelToken, Scheduler
from archsim.chaos.selection import select_random_targets
from archsim.chaos.session import ChaosEvent, ChaosEventType, ChaosSession
from archsim.graph.model import Graph

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


class ChaosOrchestrator:
    """Run chaos rounds on a recurring timer.

    Parameters
    ----------
    graph_provider:
        Returns the current graph snapshot; called once per round.
    config_provider:
        Returns the current :class:`ChaosConfig`; called once per round and
        on :meth:`start`.
    scheduler:
        Timer source.
    session:
        Session to mutate.  A fresh one is created when omitted.
    rng:
        Random source.  Defaults to ``random.Random(config.random_seed)``.
    clock:
        Returns event timestamps in milliseconds.
    on_round:
        Called with the event after every recorded round.
    """

    def __init__(
        self,
        graph_provider: Callable[[], Graph],
        config_provider: Callable[[], ChaosConfig],
        scheduler: Scheduler,
        session: ChaosSession | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] | None = None,
        on_round: Callable[[ChaosEvent], None] | None = None,
    ) -> None:
        self._graph_provider = graph_provider
        self._config_provider = config_provider
        self._scheduler = scheduler
        self._session = session if session is not None else ChaosSession()
        self._rng = rng if rng is not None else random.Random(config_provider().random_seed)
        self._clock = clock or _wall_clock_ms
        self._on_round = on_round
        self._token: CancelToken | None = None
        self._generation = 0
        self._running = False
        self._in_round = False

    @property
    def session(self) -> ChaosSession:
        return self._session

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Timer control
    # ------------------------------------------------------------------

    def start(self, run_first_round: bool = True) -> None:
        """Begin the recurring timer.  No-op when already running.

        Parameters
        ----------
        run_first_round:
            Run one round immediately instead of waiting a full interval.
        """
        if self._running:
            return
        config = self._config_provider()
        self._running = True
        self._arm(config.interval_ms)
        logger.info(
            "Chaos started: sub_mode=%s interval_ms=%s",
            config.sub_mode.value,
            config.interval_ms,
        )
        if run_first_round:
            self.run_round()

    def stop(self) -> None:
        """Cancel the timer.  Pending ticks become no-ops."""
        if not self._running:
            return
        self._running = False
        self._disarm()
        logger.info("Chaos stopped after %d round(s).", self._session.round)

    def reschedule(self) -> None:
        """Re-arm the timer with the current interval, keeping the session."""
        if not self._running:
            return
        self._disarm()
        self._arm(self._config_provider().interval_ms)

    def close(self) -> None:
        self.stop()

    def _arm(self, interval_ms: float) -> None:
        self._generation += 1
        generation = self._generation
        self._token = self._scheduler.schedule(interval_ms, lambda: self._tick(generation))

    def _disarm(self) -> None:
        self._generation += 1
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _tick(self, generation: int) -> None:
        if generation != self._generation or not self._running:
            logger.debug("Ignoring stale chaos tick (generation %d).", generation)
            return
        self.run_round()

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def run_round(self) -> ChaosEvent | None:
        """Execute one chaos round now.

        Returns
        -------
        ChaosEvent | None
            The recorded event, or ``None`` when the round had nothing to
            do (no node selected, no valid cut) or another round is still
            in progress.
        """
        if self._in_round:
            logger.debug("Chaos round already in progress; skipping tick.")
            return None
        self._in_round = True
        try:
            try:
                config = self._config_provider()
                graph = self._graph_provider()
                if self._session.prune(graph):
                    logger.debug("Dropped chaos overlay ids no longer in the graph.")
                if config.sub_mode is ChaosSubMode.RANDOM_FAILURE:
                    event = self._random_failure_round(graph, config)
                else:
                    event = self._partition_round(graph, config)
            except Exception as exc:
                logger.exception("Chaos round failed; continuing on next interval.")
                event = self._degraded_round(exc)
        finally:
            self._in_round = False

        if event is not None and self._on_round is not None:
            try:
                self._on_round(event)
            except Exception:
                logger.exception("Chaos round callback %r failed.", self._on_round)
        return event

    def _random_failure_round(self, graph: Graph, config: ChaosConfig) -> ChaosEvent | None:
        session = self._session
        new_failed = select_random_targets(
            graph.simulation_nodes(),
            config.failure_probability,
            config.max_failures_per_round,
            config.protected_node_ids,
            session.failed_node_ids,
            self._rng,
        )
        if not new_failed:
            logger.debug("Random-failure round selected no nodes.")
            return None

        blast = compute_blast_radius(
            graph,
            [*session.failed_node_ids, *new_failed],
            config.protected_node_ids,
        )
        session.apply_failures(new_failed, blast, config.protected_node_ids)

        round_number = session.next_round()
        labels = ", ".join(graph.get_node(node_id).display_name for node_id in new_failed)
        event = ChaosEvent(
            round=round_number,
            timestamp=self._clock(),
            type=ChaosEventType.NODE_FAILURE,
            message=f"Round {round_number}: {labels} failed",
            node_ids=list(new_failed),
            affected_count=len(blast.affected_node_ids),
        )
        session.record(event)
        logger.debug(
            "Round %d: failed=%s affected=%d",
            round_number,
            new_failed,
            len(blast.affected_node_ids),
        )
        return event

    def _partition_round(self, graph: Graph, config: ChaosConfig) -> ChaosEvent | None:
        session = self._session
        partition = compute_partition(graph, config.protected_node_ids, self._rng)
        if partition is None:
            logger.debug("Network-partition round found no valid cut.")
            return None

        session.apply_partition(partition)
        round_number = session.next_round()
        event = ChaosEvent(
            round=round_number,
            timestamp=self._clock(),
            type=ChaosEventType.PARTITION,
            message=(
                f"Partition: network split into groups of "
                f"{len(partition.group_a)} and {len(partition.group_b)} nodes"
            ),
            node_ids=[*partition.group_a, *partition.group_b],
            edge_ids=list(partition.severed_edge_ids),
            affected_count=len(partition.group_b),
        )
        session.record(event)
        return event

    def _degraded_round(self, exc: Exception) -> ChaosEvent:
        round_number = self._session.next_round()
        event = ChaosEvent(
            round=round_number,
            timestamp=self._clock(),
            type=ChaosEventType.DEGRADED,
            message=f"Round {round_number}: degraded ({type(exc).__name__}: {exc})",
        )
        self._session.record(event)
        return event

    def __repr__(self) -> str:
        return (
            f"ChaosOrchestrator(running={self._running}, "
            f"round={self._session.round}, events={len(self._session.events)})"
        )


__all__ = ["ChaosOrchestrator"]
