"""Benchmark: flow trace and blast radius throughput on a layered graph.

Measures how many trace_flow_path() and compute_blast_radius() calls can
be completed per second on a 10-layer, 20-wide service graph.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from archsim.cascade.engine import compute_blast_radius
from archsim.flow.tracer import trace_flow_path
from archsim.graph.model import Graph, GraphEdge, GraphNode

_ITERATIONS: int = 500
_LAYERS: int = 10
_WIDTH: int = 20


def _make_graph() -> Graph:
    """Every node links to two nodes of the next layer."""
    nodes = [GraphNode(id="root")]
    edges: list[GraphEdge] = []
    for layer in range(_LAYERS):
        for i in range(_WIDTH):
            nodes.append(GraphNode(id=f"n{layer}-{i}"))
    for i in range(_WIDTH):
        edges.append(GraphEdge(id=f"root-{i}", source="root", target=f"n0-{i}"))
    for layer in range(_LAYERS - 1):
        for i in range(_WIDTH):
            for j in (i, (i + 1) % _WIDTH):
                edges.append(
                    GraphEdge(
                        id=f"e{layer}-{i}-{j}",
                        source=f"n{layer}-{i}",
                        target=f"n{layer + 1}-{j}",
                        latency_ms=float(j % 7),
                    )
                )
    return Graph(nodes=nodes, edges=edges)


def _time(operation: str, fn: object) -> dict[str, object]:
    latencies = np.empty(_ITERATIONS, dtype=np.float64)
    start = time.perf_counter()
    for i in range(_ITERATIONS):
        t0 = time.perf_counter()
        fn()  # type: ignore[operator]
        latencies[i] = time.perf_counter() - t0
    total = time.perf_counter() - start

    result: dict[str, object] = {
        "operation": operation,
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(float(latencies.mean()) * 1000, 4),
        "p99_latency_ms": round(float(np.percentile(latencies, 99)) * 1000, 4),
    }
    print(
        f"[bench_trace_throughput] {operation}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms  p99 {result['p99_latency_ms']:.4f} ms"
    )
    return result


def run_benchmark() -> list[dict[str, object]]:
    """Entry point returning one result dict per operation."""
    graph = _make_graph()
    return [
        _time("trace_flow_path", lambda: trace_flow_path(graph, "root")),
        _time("compute_blast_radius", lambda: compute_blast_radius(graph, ["n0-0", "n4-3"])),
    ]


if __name__ == "__main__":
    results = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "trace_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(results, fh, indent=2)
    print(f"Results saved to {output_path}")
