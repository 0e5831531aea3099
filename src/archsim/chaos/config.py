"""Chaos mode configuration.

Classes
-------
- ChaosSubMode        Which kind of chaos a round injects.
- ChaosConfig         Frozen, validated configuration for chaos rounds.
- InvalidConfigError  Raised when a configuration value is out of range.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class InvalidConfigError(ValueError):
    """Raised when a simulation setting is outside its allowed range."""


class ChaosSubMode(str, Enum):
    """Kind of chaos injected by each round."""

    RANDOM_FAILURE = "random-failure"          # Random nodes fail, cascades accumulate
    NETWORK_PARTITION = "network-partition"    # Graph is cut into two groups


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChaosConfig:
    """Immutable chaos configuration.

    Attributes
    ----------
    sub_mode:
        :class:`ChaosSubMode` (or its string value) run by each round.
    interval_ms:
        Milliseconds between rounds.  Must be > 0.
    max_failures_per_round:
        Cap on nodes failed per random-failure round.  Must be >= 0.
    failure_probability:
        Probability (0.0–1.0) that each eligible node is selected in a round.
    protected_node_ids:
        Nodes that chaos never fails or partitions apart.
    random_seed:
        Optional seed for the round RNG, enabling reproducible sessions.
        ``None`` means non-deterministic.
    """

    sub_mode: ChaosSubMode = ChaosSubMode.RANDOM_FAILURE
    interval_ms: float = 3000.0
    max_failures_per_round: int = 2
    failure_probability: float = 0.3
    protected_node_ids: frozenset[str] = field(default_factory=frozenset)
    random_seed: int | None = None

    def __post_init__(self) -> None:
        try:
            sub_mode = ChaosSubMode(self.sub_mode)
        except ValueError:
            raise InvalidConfigError(
                f"sub_mode must be one of {[m.value for m in ChaosSubMode]}, "
                f"got {self.sub_mode!r}."
            ) from None
        object.__setattr__(self, "sub_mode", sub_mode)
        object.__setattr__(self, "protected_node_ids", frozenset(self.protected_node_ids))

        if not (0.0 <= self.failure_probability <= 1.0):
            raise InvalidConfigError(
                f"failure_probability must be in [0.0, 1.0], got {self.failure_probability}."
            )
        if not self.interval_ms > 0:
            raise InvalidConfigError(f"interval_ms must be > 0, got {self.interval_ms}.")
        if isinstance(self.max_failures_per_round, bool) or not isinstance(
            self.max_failures_per_round, int
        ):
            raise InvalidConfigError(
                f"max_failures_per_round must be an int, got {self.max_failures_per_round!r}."
            )
        if self.max_failures_per_round < 0:
            raise InvalidConfigError(
                f"max_failures_per_round must be >= 0, got {self.max_failures_per_round}."
            )

    def updated(self, **changes: object) -> ChaosConfig:
        """Return a validated copy with *changes* applied.

        Raises
        ------
        InvalidConfigError
            If the merged configuration is invalid.  ``self`` is unchanged.
        TypeError
            If *changes* names an unknown field.
        """
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    def with_protected(self, node_ids: Iterable[str]) -> ChaosConfig:
        return self.updated(protected_node_ids=frozenset(node_ids))

    def is_protected(self, node_id: str) -> bool:
        return node_id in self.protected_node_ids


DEFAULT_CHAOS_CONFIG = ChaosConfig()


__all__ = [
    "DEFAULT_CHAOS_CONFIG",
    "ChaosConfig",
    "ChaosSubMode",
    "InvalidConfigError",
]
