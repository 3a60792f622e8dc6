import pytest

from hic_interactions.probe_index import ProbeIndex
from hic_interactions.probes import Probe, ProbeList


def test_index_sorts_and_keeps_input_indices():
    probes = [Probe("2", 1, 10), Probe("1", 500, 600), Probe("1", 1, 10)]
    index = ProbeIndex([ProbeList(probes)])

    assert [pw.probe for pw in index] == [probes[2], probes[1], probes[0]]
    assert [pw.index for pw in index] == [2, 1, 0]
    assert index.chromosome_offset("1") == 0
    assert index.chromosome_offset("2") == 2
    assert index.chromosome_offset("3") is None
    assert index.originally_ordered() == probes


def test_shared_probe_gets_two_indices():
    a = Probe("1", 1, 10)
    b = Probe("1", 100, 110)
    index = ProbeIndex([ProbeList([a, b]), ProbeList([a])])

    assert index.probe_count == 3
    # stable sort: identical probes stay in input order
    assert [(pw.probe, pw.index) for pw in index] == [(a, 0), (a, 2), (b, 1)]


def test_theoretical_test_count():
    probes = [Probe("1", i * 100 + 1, i * 100 + 50) for i in range(3)]
    probes += [Probe("2", i * 100 + 1, i * 100 + 50) for i in range(2)]
    index = ProbeIndex([ProbeList(probes)])

    assert index.probes_per_chromosome() == {"1": 3, "2": 2}
    assert index.theoretical_test_count(cis_only=True) == 3 + 1
    assert index.theoretical_test_count(cis_only=False) == 10


def test_index_needs_probes():
    with pytest.raises(ValueError):
        ProbeIndex([])
    with pytest.raises(ValueError):
        ProbeIndex([ProbeList()])
