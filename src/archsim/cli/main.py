"""CLI entry point for archsim.

Invoked as::

    archsim [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m archsim.cli.main

Available commands
------------------
* ``trace``    — trace a request flow from a source node
* ``blast``    — compute the blast radius of failed nodes
* ``chaos``    — run chaos rounds on a virtual clock and print the event log
* ``version``  — show detailed version information

Every command takes a graph file (``.json``, ``.yaml`` or ``.yml``) with
``nodes`` and ``edges`` lists.
"""
from __future__ import annotations

import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from archsim.cascade.engine import compute_blast_radius
from archsim.chaos.config import ChaosConfig, ChaosSubMode, InvalidConfigError
from archsim.chaos.orchestrator import ChaosOrchestrator
from archsim.chaos.scheduler import ManualScheduler
from archsim.chaos.session import ChaosSession
from archsim.flow.tracer import trace_flow_path
from archsim.graph.loader import load_graph
from archsim.graph.model import Graph, GraphReferenceError, NodeNotFoundError
from archsim.stats.aggregator import (
    SimulationStats,
    chaos_stats,
    failure_stats,
    flow_stats,
)

console = Console()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load(graph_path: str) -> Graph:
    try:
        return load_graph(graph_path)
    except (FileNotFoundError, GraphReferenceError) as exc:
        console.print(f"[red]Error loading graph:[/red] {exc}")
        raise SystemExit(1) from exc


def _not_found(exc: NodeNotFoundError) -> SystemExit:
    console.print(f"[red]Unknown node:[/red] {exc.node_id}")
    return SystemExit(1)


def _print_stats(stats: SimulationStats, fields: list[str], as_json: bool) -> None:
    data = stats.to_dict()
    if as_json:
        click.echo(json.dumps({name: data[name] for name in fields}, indent=2))
        return
    table = Table(title="Statistics", show_header=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    for name in fields:
        value = data[name]
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        elif value is None:
            value = "-"
        table.add_row(name, str(value))
    console.print(table)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the log level.",
    show_default=True,
)
def cli(log_level: str) -> None:
    """Simulate request flow, failure cascades and chaos on architecture graphs."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from archsim import __version__

    console.print(f"[bold]archsim[/bold] v{__version__}")
    console.print(f"Python {sys.version}")


# ---------------------------------------------------------------------------
# trace
# ---------------------------------------------------------------------------


@cli.command(name="trace")
@click.argument("graph_path", type=click.Path())
@click.option("--source", "source_id", required=True, help="Node the request enters at.")
@click.option(
    "--round-trip/--no-round-trip",
    default=True,
    show_default=True,
    help="Include the response leg in latency statistics.",
)
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON.")
def trace_command(graph_path: str, source_id: str, round_trip: bool, as_json: bool) -> None:
    """Trace the request flow through GRAPH_PATH starting at --source."""
    graph = _load(graph_path)
    try:
        path = trace_flow_path(graph, source_id)
    except NodeNotFoundError as exc:
        raise _not_found(exc) from exc

    stats = flow_stats(path, round_trip_enabled=round_trip)
    if not as_json:
        console.print(
            f"[bold cyan]trace[/bold cyan] from {source_id!r}: "
            f"{len(path.node_ids)} node(s), {path.level_count} level(s)"
        )
        table = Table(title="Flow Levels", show_header=True)
        table.add_column("Depth", style="bold")
        table.add_column("Edge")
        table.add_column("From -> To")
        table.add_column("Protocol")
        table.add_column("Latency (ms)")
        for level in path.levels:
            for step in level.steps:
                table.add_row(
                    str(level.depth),
                    step.edge_id,
                    f"{step.from_node_id} -> {step.to_node_id}",
                    step.protocol or "-",
                    "-" if step.latency_ms is None else f"{step.latency_ms:g}",
                )
        console.print(table)

    _print_stats(
        stats,
        [
            "total_hops",
            "path_length",
            "protocols_used",
            "total_latency_ms",
            "bottleneck_edge_id",
            "branch_count",
            "round_trip_latency_ms",
        ],
        as_json,
    )


# ---------------------------------------------------------------------------
# blast
# ---------------------------------------------------------------------------


@cli.command(name="blast")
@click.argument("graph_path", type=click.Path())
@click.option("--fail", "failed_ids", multiple=True, required=True, help="Failed node id.")
@click.option("--protect", "protected_ids", multiple=True, help="Protected node id.")
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON.")
def blast_command(
    graph_path: str,
    failed_ids: tuple[str, ...],
    protected_ids: tuple[str, ...],
    as_json: bool,
) -> None:
    """Compute the blast radius of the --fail nodes in GRAPH_PATH."""
    graph = _load(graph_path)
    try:
        radius = compute_blast_radius(graph, failed_ids, protected_ids)
    except NodeNotFoundError as exc:
        raise _not_found(exc) from exc

    stats = failure_stats(
        graph, radius.failed_node_ids, radius.affected_node_ids, radius.broken_edge_ids
    )
    if not as_json:
        console.print(
            f"[bold cyan]blast[/bold cyan] failed={list(radius.failed_node_ids)} "
            f"protected={list(protected_ids)}"
        )
        table = Table(title="Cascade Levels", show_header=True)
        table.add_column("Depth", style="bold")
        table.add_column("Affected nodes")
        table.add_column("Broken edges")
        for level in radius.levels:
            table.add_row(
                str(level.depth),
                ", ".join(level.node_ids) or "-",
                ", ".join(level.edge_ids) or "-",
            )
        console.print(table)

    _print_stats(
        stats,
        ["failed_count", "affected_count", "impact_percentage", "broken_edge_count"],
        as_json,
    )


# ---------------------------------------------------------------------------
# chaos
# ---------------------------------------------------------------------------


@cli.command(name="chaos")
@click.argument("graph_path", type=click.Path())
@click.option("--rounds", default=5, show_default=True, help="Timer ticks to simulate.")
@click.option(
    "--sub-mode",
    default=ChaosSubMode.RANDOM_FAILURE.value,
    show_default=True,
    type=click.Choice([m.value for m in ChaosSubMode]),
    help="Kind of chaos injected each round.",
)
@click.option("--seed", default=None, type=int, help="RNG seed for reproducibility.")
@click.option("--probability", default=0.3, show_default=True, type=float,
              help="Per-node failure probability.")
@click.option("--max-failures", default=2, show_default=True, type=int,
              help="Maximum nodes failed per round.")
@click.option("--interval", "interval_ms", default=3000.0, show_default=True, type=float,
              help="Virtual milliseconds between rounds.")
@click.option("--protect", "protected_ids", multiple=True, help="Protected node id.")
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON.")
def chaos_command(
    graph_path: str,
    rounds: int,
    sub_mode: str,
    seed: int | None,
    probability: float,
    max_failures: int,
    interval_ms: float,
    protected_ids: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run --rounds chaos ticks against GRAPH_PATH on a virtual clock.

    Rounds that select no node, or find no valid partition, are skipped
    and do not appear in the event log.
    """
    graph = _load(graph_path)
    try:
        config = ChaosConfig(
            sub_mode=ChaosSubMode(sub_mode),
            interval_ms=interval_ms,
            max_failures_per_round=max_failures,
            failure_probability=probability,
            protected_node_ids=frozenset(protected_ids),
            random_seed=seed,
        )
    except InvalidConfigError as exc:
        console.print(f"[red]Invalid chaos configuration:[/red] {exc}")
        raise SystemExit(1) from exc

    scheduler = ManualScheduler()
    session = ChaosSession()
    orchestrator = ChaosOrchestrator(
        graph_provider=lambda: graph,
        config_provider=lambda: config,
        scheduler=scheduler,
        session=session,
        clock=scheduler.now,
    )
    orchestrator.start(run_first_round=False)
    for _ in range(rounds):
        scheduler.advance(config.interval_ms)
    orchestrator.stop()

    stats = chaos_stats(graph, session)
    if not as_json:
        console.print(
            f"[bold cyan]chaos[/bold cyan] sub_mode={config.sub_mode.value} "
            f"ticks={rounds} seed={seed}"
        )
        table = Table(title="Chaos Event Log", show_header=True)
        table.add_column("Round", style="bold")
        table.add_column("Time (ms)")
        table.add_column("Type")
        table.add_column("Message")
        for event in session.events:
            table.add_row(
                str(event.round), f"{event.timestamp:g}", event.type.value, event.message
            )
        console.print(table)

    _print_stats(
        stats,
        [
            "chaos_rounds",
            "chaos_total_failures",
            "chaos_mtbf_ms",
            "chaos_severed_edges",
            "failed_count",
            "affected_count",
            "impact_percentage",
        ],
        as_json,
    )


if __name__ == "__main__":
    cli()
