import pytest

from hic_interactions.probes import (
    FORWARD,
    UNKNOWN,
    GenomicBins,
    Probe,
    ProbeList,
    chromosome_sort_key,
    find_common_parent,
    load_probes_bed,
)


def test_chromosome_order_numeric_first():
    names = ["X", "10", "2", "pseudo1", "MT"]
    assert sorted(names, key=chromosome_sort_key) == ["pseudo1", "2", "10", "MT", "X"]


def test_probe_rejects_end_before_start():
    with pytest.raises(ValueError):
        Probe("1", 100, 99)


def test_probe_overlap_is_inclusive():
    p = Probe("1", 10, 20)
    assert p.length == 11
    assert p.overlaps(20, 30)
    assert p.overlaps(1, 10)
    assert not p.overlaps(21, 30)


def test_probes_sort_by_chromosome_then_position():
    probes = [Probe("2", 5, 10), Probe("1", 50, 60), Probe("1", 5, 10)]
    assert sorted(probes) == [Probe("1", 5, 10), Probe("1", 50, 60), Probe("2", 5, 10)]


def test_probe_list_parent_and_common_ancestor():
    root = ProbeList([Probe("1", 1, 10), Probe("1", 20, 30)])
    a = ProbeList(root.probes[:1], name="a", parent=root)
    b = ProbeList(root.probes[1:], name="b", parent=root)
    aa = ProbeList(a.probes, name="aa", parent=a)

    assert root.children == [a, b]
    assert find_common_parent([aa, b]) is root
    assert find_common_parent([aa, a]) is a
    assert find_common_parent([b]) is b


def test_probe_list_values_must_match_names():
    pl = ProbeList(value_names=("R-value",))
    pl.add_probe(Probe("1", 1, 10), [0.5])
    assert pl.values_for(0) == (0.5,)
    with pytest.raises(ValueError):
        pl.add_probe(Probe("1", 20, 30), [0.5, 0.1])


def test_bins_to_probes_inclusive():
    bins = GenomicBins(chrom="chr1", start=0, binsize=100, n_bins=3)
    probes = bins.to_probes()
    assert [(p.start, p.end) for p in probes] == [(1, 100), (101, 200), (201, 300)]
    assert probes[1].name == "chr1_1"


def test_load_probes_bed_converts_coordinates(tmp_path):
    p = tmp_path / "probes.bed"
    p.write_text("# header\nchr1\t0\t100\tp1\t0\t+\nchr2\t200\t300\tp2\t0\t.\n")

    pl = load_probes_bed(p)
    assert pl.name == "probes"
    assert len(pl) == 2
    first, second = pl.probes
    assert (first.chromosome, first.start, first.end, first.name) == ("chr1", 1, 100, "p1")
    assert first.strand == FORWARD
    assert second.strand == UNKNOWN


def test_load_probes_bed_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_probes_bed(tmp_path / "nope.bed")
