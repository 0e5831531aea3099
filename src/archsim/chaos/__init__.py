"""Chaos mode subpackage: configuration, target selection, partitioning,
scheduling and the round orchestrator."""
from __future__ import annotations

from archsim.chaos.config import (
    DEFAULT_CHAOS_CONFIG,
    ChaosConfig,
    ChaosSubMode,
    InvalidConfigError,
)
from archsim.chaos.orchestrator import ChaosOrchestrator
from archsim.chaos.partition import PartitionResult, compute_partition
from archsim.chaos.scheduler import (
    AsyncioScheduler,
    CancelToken,
    ManualScheduler,
    Scheduler,
)
from archsim.chaos.selection import select_random_targets
from archsim.chaos.session import ChaosEvent, ChaosEventType, ChaosSession

__all__ = [
    "DEFAULT_CHAOS_CONFIG",
    "AsyncioScheduler",
    "CancelToken",
    "ChaosConfig",
    "ChaosEvent",
    "ChaosEventType",
    "ChaosOrchestrator",
    "ChaosSession",
    "ChaosSubMode",
    "InvalidConfigError",
    "ManualScheduler",
    "PartitionResult",
    "Scheduler",
    "compute_partition",
    "select_random_targets",
]
