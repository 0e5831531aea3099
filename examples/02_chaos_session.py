#!/usr/bin/env python3
"""Example: Chaos session on an asyncio event loop — archsim

Runs random-failure chaos rounds on a real timer for a couple of seconds,
printing each event as the controller notifies its subscribers.

Usage:
    python examples/02_chaos_session.py

Requirements:
    pip install archsim
"""
from __future__ import annotations

import asyncio

from archsim import (
    AsyncioScheduler,
    Graph,
    GraphEdge,
    GraphNode,
    PlaybackController,
)


def _mesh() -> Graph:
    names = ["gw", "auth", "orders", "billing", "db", "cache"]
    links = [
        ("gw", "auth"),
        ("gw", "orders"),
        ("orders", "billing"),
        ("orders", "db"),
        ("orders", "cache"),
        ("billing", "db"),
    ]
    return Graph(
        nodes=[GraphNode(id=n) for n in names],
        edges=[GraphEdge(id=f"{s}->{t}", source=s, target=t) for s, t in links],
    )


async def main() -> None:
    controller = PlaybackController(_mesh(), scheduler=AsyncioScheduler())
    controller.set_chaos_config(interval_ms=300, failure_probability=0.25, random_seed=7)
    controller.toggle_protected_node("db")

    printed = 0

    def _on_change(c: PlaybackController) -> None:
        nonlocal printed
        for event in c.chaos_event_log[printed:]:
            print(f"[{event.type.value}] {event.message}")
        printed = len(c.chaos_event_log)

    controller.subscribe(_on_change)
    controller.start_chaos()
    await asyncio.sleep(2.0)
    controller.stop_chaos()

    stats = controller.stats()
    assert stats is not None
    print(
        f"\n{stats.chaos_rounds} round(s), {stats.chaos_total_failures} failure(s), "
        f"impact {stats.impact_percentage}%, MTBF {stats.chaos_mtbf_ms} ms"
    )
    controller.close()


if __name__ == "__main__":
    asyncio.run(main())
