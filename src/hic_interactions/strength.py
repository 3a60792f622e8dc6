from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from scipy.stats import binom

from .contacts import ContactSource
from .probes import Probe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InteractionStrength:
    probability: float
    obs_exp: float
    p_value: float
    cis: bool


def _neutral(cis: bool) -> InteractionStrength:
    return InteractionStrength(probability=0.0, obs_exp=1.0, p_value=1.0, cis=cis)


class StrengthCalculator:
    """Binomial background model for a probe pair.

    Cis and trans expectations are worked out separately since datasets differ
    wildly in their cis/trans ratio (and some have trans removed entirely).
    Probe 1 is the end whose contacts were counted; probe 2's share of the
    relevant background gives the per-contact probability of landing on it.
    """

    def __init__(self, source: ContactSource, *, correct_linkage: bool = False) -> None:
        self.source = source
        self.correct_linkage = bool(correct_linkage)

    def expected_probability(self, probe1: Probe, probe2: Probe, probe2_cis: int, probe2_trans: int) -> float:
        if probe1.chromosome == probe2.chromosome:
            expected = probe2_cis / self.source.cis_count_for_chromosome(probe1.chromosome)

            if self.correct_linkage:
                shortest = max(probe1.start, probe2.start) - min(probe1.end, probe2.end)
                longest = max(probe1.end, probe2.end) - min(probe1.start, probe2.start)
                expected *= self.source.correction_for_length(probe1.chromosome, shortest, longest)
        else:
            background = self.source.trans_count() - self.source.trans_count_for_chromosome(probe1.chromosome)
            expected = probe2_trans / background

        # Linkage correction can push this over 1
        return min(expected, 1.0)

    def calculate(
        self,
        count: int,
        probe1_cis: int,
        probe1_trans: int,
        probe2_cis: int,
        probe2_trans: int,
        probe1: Probe,
        probe2: Probe,
    ) -> InteractionStrength:
        cis = probe1.chromosome == probe2.chromosome

        if (
            probe1_cis + probe1_trans == 0
            or probe2_cis + probe2_trans == 0
            or (cis and self.source.cis_count() == 0)
            or (not cis and self.source.trans_count() == 0)
        ):
            logger.debug("No data for %s vs %s; using neutral values", probe1, probe2)
            return _neutral(cis)

        if cis and self.source.cis_count_for_chromosome(probe1.chromosome) == 0:
            return _neutral(cis)
        if not cis and self.source.trans_count() - self.source.trans_count_for_chromosome(probe1.chromosome) <= 0:
            return _neutral(cis)

        p = self.expected_probability(probe1, probe2, probe2_cis, probe2_trans)
        n = probe1_cis if cis else probe1_trans

        denominator = n * p
        obs_exp = count / denominator if denominator > 0 else math.inf

        # P(X >= count), not P(X > count)
        p_value = float(binom.sf(count - 1, n, p))

        return InteractionStrength(probability=p, obs_exp=obs_exp, p_value=p_value, cis=cis)
