"""Unit tests for the CLI commands.

Uses Click's CliRunner to invoke all commands without launching a real process.
Covers:
- cli root group (--help, --log-level)
- version command
- trace (table, JSON, unknown source, missing file)
- blast (failed and protected nodes, unknown node)
- chaos (random failure, partition, invalid configuration)
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from archsim.cli.main import cli


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


_DIAMOND = {
    "nodes": [{"id": "A"}, {"id": "B"}, {"id": "C"}, {"id": "D"}],
    "edges": [
        {"id": "e1", "source": "A", "target": "B", "protocol": "http", "latencyMs": 10},
        {"id": "e2", "source": "A", "target": "C", "protocol": "grpc", "latencyMs": 30},
        {"id": "e3", "source": "B", "target": "D", "latencyMs": 5},
        {"id": "e4", "source": "C", "target": "D", "latencyMs": 1},
    ],
}


def _runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def graph_path(tmp_path: Path) -> str:
    path = tmp_path / "diamond.json"
    path.write_text(json.dumps(_DIAMOND), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


class TestCliRoot:
    def test_help(self) -> None:
        result = _runner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("trace", "blast", "chaos", "version"):
            assert command in result.output

    def test_log_level_option_accepted(self) -> None:
        result = _runner().invoke(cli, ["--log-level", "DEBUG", "version"])
        assert result.exit_code == 0

    def test_invalid_log_level(self) -> None:
        result = _runner().invoke(cli, ["--log-level", "LOUD", "version"])
        assert result.exit_code != 0


class TestVersionCommand:
    def test_version_output(self) -> None:
        result = _runner().invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "archsim" in result.output
        assert "0.1.0" in result.output


# ---------------------------------------------------------------------------
# trace
# ---------------------------------------------------------------------------


class TestTraceCommand:
    def test_table_output(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["trace", graph_path, "--source", "A"])
        assert result.exit_code == 0, result.output
        assert "Flow Levels" in result.output
        assert "Statistics" in result.output

    def test_json_output(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["trace", graph_path, "--source", "A", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["total_hops"] == 3
        assert data["total_latency_ms"] == 45.0
        assert data["bottleneck_edge_id"] == "e2"
        assert data["branch_count"] == 2

    def test_no_round_trip(self, graph_path: str) -> None:
        result = _runner().invoke(
            cli, ["trace", graph_path, "--source", "A", "--no-round-trip", "--json"]
        )
        assert json.loads(result.output)["round_trip_latency_ms"] is None

    def test_unknown_source(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["trace", graph_path, "--source", "ghost"])
        assert result.exit_code == 1
        assert "Unknown node" in result.output

    def test_missing_graph_file(self, tmp_path: Path) -> None:
        result = _runner().invoke(cli, ["trace", str(tmp_path / "nope.json"), "--source", "A"])
        assert result.exit_code == 1
        assert "Error loading graph" in result.output

    def test_invalid_graph_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": [], "edges": [{"id": "e", "source": "x",
                                                            "target": "y"}]}))
        result = _runner().invoke(cli, ["trace", str(path), "--source", "x"])
        assert result.exit_code == 1

    def test_yaml_graph(self, tmp_path: Path) -> None:
        path = tmp_path / "graph.yml"
        path.write_text("nodes: [{id: a}, {id: b}]\nedges: [{id: e1, source: a, target: b}]\n")
        result = _runner().invoke(cli, ["trace", str(path), "--source", "a", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["path_length"] == 2


# ---------------------------------------------------------------------------
# blast
# ---------------------------------------------------------------------------


class TestBlastCommand:
    def test_table_output(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["blast", graph_path, "--fail", "A"])
        assert result.exit_code == 0, result.output
        assert "Cascade Levels" in result.output

    def test_json_output(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["blast", graph_path, "--fail", "B", "--json"])
        data = json.loads(result.output)
        assert data["failed_count"] == 1
        assert data["affected_count"] == 1
        assert data["impact_percentage"] == 25.0

    def test_protected_node(self, graph_path: str) -> None:
        result = _runner().invoke(
            cli, ["blast", graph_path, "--fail", "A", "--protect", "B", "--json"]
        )
        assert json.loads(result.output)["affected_count"] == 2

    def test_fail_is_required(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["blast", graph_path])
        assert result.exit_code != 0

    def test_unknown_node(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["blast", graph_path, "--fail", "ghost"])
        assert result.exit_code == 1
        assert "ghost" in result.output


# ---------------------------------------------------------------------------
# chaos
# ---------------------------------------------------------------------------


class TestChaosCommand:
    def test_random_failure_json(self, graph_path: str) -> None:
        result = _runner().invoke(
            cli,
            [
                "chaos", graph_path,
                "--rounds", "3",
                "--probability", "1",
                "--max-failures", "1",
                "--seed", "1",
                "--json",
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["chaos_rounds"] == 3
        assert data["chaos_total_failures"] == 3
        assert data["chaos_mtbf_ms"] == 3000.0

    def test_event_log_table(self, graph_path: str) -> None:
        result = _runner().invoke(
            cli, ["chaos", graph_path, "--rounds", "2", "--probability", "1"]
        )
        assert result.exit_code == 0, result.output
        assert "Chaos Event Log" in result.output
        assert "node-failure" in result.output

    def test_partition(self, graph_path: str) -> None:
        result = _runner().invoke(
            cli,
            ["chaos", graph_path, "--sub-mode", "network-partition", "--rounds", "2",
             "--seed", "7", "--json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["chaos_rounds"] == 2
        assert data["chaos_severed_edges"] >= 1

    def test_protected_nodes(self, graph_path: str) -> None:
        result = _runner().invoke(
            cli,
            ["chaos", graph_path, "--rounds", "5", "--probability", "1",
             "--protect", "A", "--protect", "B", "--protect", "C", "--protect", "D",
             "--json"],
        )
        data = json.loads(result.output)
        assert data["chaos_rounds"] == 0
        assert data["failed_count"] == 0

    def test_invalid_probability(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["chaos", graph_path, "--probability", "1.5"])
        assert result.exit_code == 1
        assert "Invalid chaos configuration" in result.output

    def test_unknown_sub_mode(self, graph_path: str) -> None:
        result = _runner().invoke(cli, ["chaos", graph_path, "--sub-mode", "meteor"])
        assert result.exit_code != 0
