import math

import pandas as pd
import pytest
from scipy.stats import binom

from hic_interactions.contacts import PAIR_COLUMNS, PairedContacts
from hic_interactions.probes import Probe
from hic_interactions.strength import StrengthCalculator


def _source(rows, cls=PairedContacts):
    return cls(pd.DataFrame(rows, columns=PAIR_COLUMNS))


CIS_ROWS = [
    ("chr1", 11, 60, "chr1", 1011, 1060, 10),
    ("chr1", 1021, 1070, "chr1", 2011, 2060, 5),
    ("chr1", 21, 70, "chr1", 50001, 50050, 5),
    ("chr1", 2021, 2070, "chr1", 60001, 60050, 10),
]


def test_cis_strength_matches_binomial():
    calc = StrengthCalculator(_source(CIS_ROWS))
    p0 = Probe("chr1", 1, 100)
    p1 = Probe("chr1", 1001, 1100)

    s = calc.calculate(10, 15, 0, 15, 0, p0, p1)
    assert s.cis
    assert s.probability == pytest.approx(15 / 60)
    assert s.obs_exp == pytest.approx(10 / (15 * 0.25))
    assert s.p_value == pytest.approx(binom.sf(9, 15, 0.25))


def test_stronger_count_scores_higher():
    calc = StrengthCalculator(_source(CIS_ROWS))
    p0 = Probe("chr1", 1, 100)
    p1 = Probe("chr1", 1001, 1100)

    strong = calc.calculate(10, 15, 0, 15, 0, p0, p1)
    weak = calc.calculate(5, 15, 0, 15, 0, p0, p1)
    assert strong.obs_exp > weak.obs_exp
    assert strong.p_value < weak.p_value


def test_trans_background_excludes_own_chromosome():
    src = _source(
        [
            ("chr1", 1, 50, "chr2", 1, 50, 4),
            ("chr1", 101, 150, "chr3", 1, 50, 6),
        ]
    )
    calc = StrengthCalculator(src)
    a = Probe("chr1", 1, 100)
    b = Probe("chr2", 1, 100)

    s = calc.calculate(4, 0, 10, 0, 4, a, b)
    assert not s.cis
    # 4 of the 20 - 10 trans ends not on chr1
    assert s.probability == pytest.approx(0.4)
    assert s.obs_exp == pytest.approx(1.0)


def test_zero_marginals_are_neutral():
    calc = StrengthCalculator(_source(CIS_ROWS))
    a = Probe("chr1", 1, 100)
    b = Probe("chr1", 900_001, 900_100)

    s = calc.calculate(0, 15, 0, 0, 0, a, b)
    assert (s.probability, s.obs_exp, s.p_value) == (0.0, 1.0, 1.0)


def test_no_trans_data_is_neutral():
    calc = StrengthCalculator(_source(CIS_ROWS))
    s = calc.calculate(1, 5, 5, 5, 5, Probe("chr1", 1, 100), Probe("chr2", 1, 100))
    assert (s.obs_exp, s.p_value) == (1.0, 1.0)


def test_zero_count_has_p_value_one():
    calc = StrengthCalculator(_source(CIS_ROWS))
    s = calc.calculate(0, 15, 0, 15, 0, Probe("chr1", 1, 100), Probe("chr1", 1001, 1100))
    assert s.p_value == pytest.approx(1.0)
    assert s.obs_exp == 0.0


class _HugeLinkage(PairedContacts):
    def correction_for_length(self, chromosome, shortest, longest):
        return 1e6


def test_linkage_correction_caps_probability():
    calc = StrengthCalculator(_source(CIS_ROWS, cls=_HugeLinkage), correct_linkage=True)
    s = calc.calculate(10, 15, 0, 15, 0, Probe("chr1", 1, 100), Probe("chr1", 1001, 1100))
    assert s.probability == 1.0
    assert math.isfinite(s.obs_exp)
