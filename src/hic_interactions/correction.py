from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from .interactions import InteractionProbePair
from .probe_index import ProbeIndex

logger = logging.getLogger(__name__)


def theoretical_test_count(index: ProbeIndex, max_distance: int) -> int:
    """Number of tests to correct for.

    This is the size of the search space, not the number of pairs observed:
    unobserved pairs were still implicitly tested, and correcting only for the
    observed ones badly under-corrects. With a finite max distance only cis
    pairs can ever pass, so only those are counted.
    """
    return index.theoretical_test_count(cis_only=max_distance > 0)


def rank_corrected(p_values: np.ndarray, total_tests: int) -> np.ndarray:
    """Rank-scale ascending p-values, ``p * total / rank``, forced non-decreasing."""
    p = np.asarray(p_values, dtype=np.float64)
    if p.size == 0:
        return p.copy()
    if np.any(np.diff(p) < 0):
        raise ValueError("p-values must be sorted ascending")
    ranks = np.arange(1, p.size + 1, dtype=np.float64)
    corrected = p * (float(total_tests) / ranks)
    return np.maximum.accumulate(corrected)


def correct(
    pairs: Sequence[InteractionProbePair],
    total_tests: int,
    max_significance: float,
) -> list[InteractionProbePair]:
    """Apply the multiple-testing correction in place and trim.

    Pairs are sorted by raw p-value (held in ``significance``), each receives
    its corrected value, and the prefix whose corrected value is below
    ``max_significance`` is returned (all pairs when ``max_significance >= 1``).
    """
    ordered = sorted(pairs, key=lambda p: p.significance)
    corrected = rank_corrected(np.array([p.significance for p in ordered]), total_tests)

    for pair, value in zip(ordered, corrected):
        pair.significance = float(value)

    if max_significance >= 1:
        kept = ordered
    else:
        # corrected values are monotone, so the survivors form a prefix
        cut = int(np.searchsorted(corrected, max_significance, side="left"))
        kept = ordered[:cut]

    logger.info(
        "Corrected %d pairs for %d tests; %d below %s",
        len(ordered),
        total_tests,
        len(kept),
        max_significance,
    )
    return kept
