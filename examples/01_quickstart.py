#!/usr/bin/env python3
"""Example: Quickstart — archsim

Minimal working example: trace a request through a small architecture,
fail a node and inspect the blast radius, then read the stats panel.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install archsim
"""
from __future__ import annotations

import archsim
from archsim import (
    Graph,
    GraphEdge,
    GraphNode,
    PlaybackController,
    ManualScheduler,
    compute_blast_radius,
    trace_flow_path,
)


def _shop() -> Graph:
    return Graph(
        nodes=[
            GraphNode(id="gw", label="API Gateway"),
            GraphNode(id="orders", label="Orders"),
            GraphNode(id="payments", label="Payments"),
            GraphNode(id="db", label="Orders DB"),
            GraphNode(id="bus", label="Event Bus"),
        ],
        edges=[
            GraphEdge(id="e1", source="gw", target="orders", protocol="https", latency_ms=20),
            GraphEdge(id="e2", source="orders", target="db", protocol="tcp", latency_ms=4),
            GraphEdge(id="e3", source="orders", target="payments", protocol="grpc", latency_ms=35),
            GraphEdge(id="e4", source="payments", target="bus", protocol="kafka", latency_ms=8),
        ],
    )


def main() -> None:
    print(f"archsim version: {archsim.__version__}")
    graph = _shop()

    # Step 1: Trace a request entering at the gateway
    path = trace_flow_path(graph, "gw")
    for level in path.levels:
        hops = ", ".join(f"{s.from_node_id}->{s.to_node_id}" for s in level.steps)
        print(f"  depth {level.depth}: {hops}")

    # Step 2: Blast radius of the Orders service, with the DB protected
    radius = compute_blast_radius(graph, ["orders"], protected_node_ids=["db"])
    print(f"\nAffected by orders failing: {radius.affected_node_ids}")
    print(f"Broken edges: {radius.broken_edge_ids}")

    # Step 3: Drive the same thing through the playback controller
    controller = PlaybackController(graph, scheduler=ManualScheduler())
    controller.start_flow_simulation("gw")
    stats = controller.stats()
    assert stats is not None
    print(
        f"\nFlow: {stats.total_hops} hops, {stats.total_latency_ms:.0f} ms, "
        f"bottleneck={stats.bottleneck_edge_id}, "
        f"round trip={stats.round_trip_latency_ms:.0f} ms"
    )

    controller.toggle_node_failure("payments")
    stats = controller.stats()
    assert stats is not None
    print(f"Failure: impact {stats.impact_percentage}% of nodes")
    controller.close()


if __name__ == "__main__":
    main()
