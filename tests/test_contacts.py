import numpy as np
import pandas as pd
import pytest

from hic_interactions.contacts import PAIR_COLUMNS, PairedContacts, load_contact_pairs
from hic_interactions.probes import Probe


def _pairs(rows):
    return pd.DataFrame(rows, columns=PAIR_COLUMNS)


def test_totals_count_fragment_ends():
    src = PairedContacts(
        _pairs(
            [
                ("chr1", 1, 50, "chr1", 1001, 1050, 3),
                ("chr1", 101, 150, "chr2", 1, 50, 2),
            ]
        )
    )

    assert src.cis_count_for_chromosome("chr1") == 6
    assert src.trans_count_for_chromosome("chr1") == 2
    assert src.trans_count_for_chromosome("chr2") == 2
    assert src.cis_count_for_chromosome("chr2") == 0
    assert src.cis_count() == 6
    assert src.trans_count() == 4
    assert src.chromosomes == ["chr1", "chr2"]


def test_hits_are_found_from_either_end():
    src = PairedContacts(_pairs([("chr1", 1, 50, "chr2", 501, 550, 4)]))

    hits = src.hits_for_probe(Probe("chr1", 40, 60))
    assert hits.chromosome_names() == ["chr2"]
    block = hits.sorted_block("chr2")
    assert block.starts.tolist() == [501]
    assert block.total == 4

    back = src.hits_for_probe(Probe("chr2", 550, 600))
    assert back.chromosome_names() == ["chr1"]
    assert back.count_for_chromosome("chr1") == 4

    assert len(src.hits_for_probe(Probe("chr1", 51, 100))) == 0
    assert len(src.hits_for_probe(Probe("chr3", 1, 100))) == 0


def test_sorted_block_orders_by_start():
    src = PairedContacts(
        _pairs(
            [
                ("chr1", 1, 50, "chr1", 9001, 9050, 1),
                ("chr1", 11, 60, "chr1", 2001, 2050, 1),
            ]
        )
    )
    block = src.hits_for_probe(Probe("chr1", 1, 100)).sorted_block("chr1")
    assert block.starts.tolist() == [2001, 9001]


def test_zero_count_rows_are_dropped():
    src = PairedContacts(_pairs([("chr1", 1, 50, "chr1", 1001, 1050, 0)]))
    assert src.cis_count() == 0


def test_invalid_interval_rejected():
    with pytest.raises(ValueError):
        PairedContacts(_pairs([("chr1", 50, 1, "chr1", 1001, 1050, 1)]))


def test_linkage_correction_defaults():
    src = PairedContacts(_pairs([("chr1", 1, 50, "chr2", 1, 50, 1)]))
    # no cis data anywhere: every factor is neutral
    assert src.correction_for_length("chr1", 0, 5000) == 1.0
    assert src.correction_for_length("chrZ", 0, 5000) == 1.0


def test_linkage_correction_favours_short_fragments():
    rows = [("chr1", 1, 50, "chr1", 2001, 2050, 50)]
    rows += [("chr1", 1, 50, "chr1", 95_001, 95_050, 1)]
    src = PairedContacts(_pairs(rows), chrom_sizes={"chr1": 100_000})

    near = src.correction_for_length("chr1", 0, 2050)
    assert near > 1.0
    assert np.isfinite(src.correction_for_length("chr1", 0, 10**9))


def test_load_contact_pairs(tmp_path):
    p = tmp_path / "pairs.tsv"
    p.write_text("# c1 s1 e1 c2 s2 e2\nchr1\t1\t50\tchr1\t1001\t1050\nchr1\t1\t50\tchr2\t1\t50\n")

    df = load_contact_pairs(p)
    assert list(df.columns) == PAIR_COLUMNS
    assert df["count"].tolist() == [1, 1]
    assert df["chrom2"].tolist() == ["chr1", "chr2"]


def test_source_from_pairs_file(tmp_path):
    p = tmp_path / "pairs.tsv"
    p.write_text("chr1\t1\t50\tchr1\t1001\t1050\t3\nchr1\t1\t50\tchr2\t1\t50\t2\n")

    src = PairedContacts.from_pairs_file(p, distance_group_length=5000)
    assert src.distance_group_length == 5000
    assert src.cis_count_for_chromosome("chr1") == 6
    assert src.trans_count() == 4


def test_load_contact_pairs_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_contact_pairs(tmp_path / "missing.tsv")

    p = tmp_path / "bad.tsv"
    p.write_text("chr1\t1\t50\tchr1\n")
    with pytest.raises(ValueError):
        load_contact_pairs(p)
