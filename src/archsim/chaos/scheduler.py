"""Cancellable recurring timers for the chaos loop.

The orchestrator never touches a runtime timer API directly; it asks a
:class:`Scheduler` to call it back every ``interval_ms`` and keeps the
returned :class:`CancelToken`.  Two implementations ship:

- :class:`AsyncioScheduler` re-arms ``loop.call_later`` on an asyncio event
  loop, so rounds run on the loop thread between other callbacks.
- :class:`ManualScheduler` keeps a virtual clock that tests advance by hand.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


class CancelToken:
    """Handle for a scheduled recurring callback.

    Cancelling is idempotent.  Once cancelled, the scheduler will not
    invoke the callback again.
    """

    def __init__(self, on_cancel: Callable[[], None] | None = None) -> None:
        self._cancelled = False
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled})"


@runtime_checkable
class Scheduler(Protocol):
    """Anything that can run *callback* every *interval_ms* until cancelled."""

    def schedule(self, interval_ms: float, callback: TimerCallback) -> CancelToken:
        ...


# ---------------------------------------------------------------------------
# asyncio
# ---------------------------------------------------------------------------


class AsyncioScheduler:
    """Recurring timers on an asyncio event loop.

    Parameters
    ----------
    loop:
        Loop to schedule on.  When omitted, the loop running at the time of
        :meth:`schedule` is used, so ``schedule`` must then be called from
        inside a coroutine or loop callback.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, interval_ms: float, callback: TimerCallback) -> CancelToken:
        loop = self._loop or asyncio.get_running_loop()
        delay = interval_ms / 1000.0
        handle: asyncio.TimerHandle | None = None

        def _cancel_handle() -> None:
            if handle is not None:
                handle.cancel()

        token = CancelToken(on_cancel=_cancel_handle)

        def _fire() -> None:
            nonlocal handle
            if token.cancelled:
                return
            # Re-arm first so the period does not drift with round duration.
            handle = loop.call_later(delay, _fire)
            callback()

        handle = loop.call_later(delay, _fire)
        return token


# ---------------------------------------------------------------------------
# Manual (virtual clock)
# ---------------------------------------------------------------------------


@dataclass
class _ManualTimer:
    token: CancelToken
    interval_ms: float
    next_due_ms: float
    callback: TimerCallback
    seq: int


class ManualScheduler:
    """Deterministic scheduler driven by :meth:`advance`.

    Example
    -------
    ::

        scheduler = ManualScheduler()
        token = scheduler.schedule(1000, tick)
        scheduler.advance(3000)   # tick runs three times
        token.cancel()
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = start_ms
        self._timers: list[_ManualTimer] = []
        self._seq = 0

    def now(self) -> float:
        """Current virtual time in milliseconds; usable as an event clock."""
        return self._now_ms

    @property
    def active_count(self) -> int:
        return sum(1 for t in self._timers if not t.token.cancelled)

    def schedule(self, interval_ms: float, callback: TimerCallback) -> CancelToken:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {interval_ms}.")
        token = CancelToken()
        self._seq += 1
        self._timers.append(
            _ManualTimer(
                token=token,
                interval_ms=interval_ms,
                next_due_ms=self._now_ms + interval_ms,
                callback=callback,
                seq=self._seq,
            )
        )
        return token

    def advance(self, ms: float) -> int:
        """Move the clock forward by *ms*, firing every timer that comes due.

        Returns
        -------
        int
            Number of callbacks invoked.
        """
        target = self._now_ms + ms
        fired = 0
        while True:
            due = [
                t for t in self._timers
                if not t.token.cancelled and t.next_due_ms <= target
            ]
            if not due:
                break
            timer = min(due, key=lambda t: (t.next_due_ms, t.seq))
            self._now_ms = timer.next_due_ms
            timer.next_due_ms += timer.interval_ms
            timer.callback()
            fired += 1
        self._now_ms = target
        self._timers = [t for t in self._timers if not t.token.cancelled]
        return fired


__all__ = [
    "AsyncioScheduler",
    "CancelToken",
    "ManualScheduler",
    "Scheduler",
    "TimerCallback",
]
