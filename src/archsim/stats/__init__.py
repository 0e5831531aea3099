"""Derived simulation statistics subpackage."""
from __future__ import annotations

from archsim.stats.aggregator import (
    ONE_WAY_PROTOCOLS,
    SimulationStats,
    chaos_stats,
    compute_stats,
    failure_stats,
    flow_stats,
    impact_percentage,
    mean_time_between,
)

__all__ = [
    "ONE_WAY_PROTOCOLS",
    "SimulationStats",
    "chaos_stats",
    "compute_stats",
    "failure_stats",
    "flow_stats",
    "impact_percentage",
    "mean_time_between",
]
