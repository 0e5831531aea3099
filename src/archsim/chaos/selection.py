"""Random target selection for random-failure chaos rounds."""
from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence

from archsim.graph.model import GraphNode

logger = logging.getLogger(__name__)


def select_random_targets(
    nodes: Sequence[GraphNode],
    probability: float,
    max_count: int,
    protected_node_ids: Iterable[str],
    already_failed_ids: Iterable[str],
    rng: random.Random,
) -> list[str]:
    """Pick nodes to fail this round.

    Every eligible node (not decorative, not protected, not already failed)
    gets one independent draw with *probability*, in input order.  The
    selection is then truncated to the first *max_count* hits, so the
    result is reproducible for a seeded *rng*.

    Parameters
    ----------
    nodes:
        Candidate nodes in diagram order.
    probability:
        Per-node selection probability in [0.0, 1.0].
    max_count:
        Maximum number of nodes returned.
    protected_node_ids:
        Nodes that can never be selected.
    already_failed_ids:
        Nodes that are already down and are skipped.
    rng:
        Source of randomness.

    Returns
    -------
    list[str]
        Selected node ids, possibly empty.
    """
    excluded = set(protected_node_ids).union(already_failed_ids)
    eligible = [n.id for n in nodes if not n.is_decorative and n.id not in excluded]

    hits = [node_id for node_id in eligible if rng.random() < probability]
    selected = hits[: max(max_count, 0)]
    logger.debug(
        "Selected %d of %d eligible node(s) (%d hit(s), cap=%d).",
        len(selected),
        len(eligible),
        len(hits),
        max_count,
    )
    return selected


__all__ = ["select_random_targets"]
