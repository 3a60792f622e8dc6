import json

import pandas as pd

from hic_interactions.interactions import InteractionProbePair
from hic_interactions.probes import Probe, ProbeList
from hic_interactions.reporting import (
    REPORT_COLUMNS,
    interaction_report,
    probe_list_table,
    write_json,
    write_report,
)


def test_interaction_report_columns():
    a = Probe("chr1", 1, 100, name="a")
    b = Probe("chr1", 1001, 1100, name="b")
    c = Probe("chr2", 1, 100)
    pairs = [
        InteractionProbePair(a, 0, b, 1, 2.5, 10, 0.001),
        InteractionProbePair(a, 0, c, 2, 1.5, 3, 0.2),
    ]

    df = interaction_report(pairs)
    assert list(df.columns) == REPORT_COLUMNS
    assert df.loc[0, "distance"] == 901
    assert pd.isna(df.loc[1, "distance"])
    assert df["probe2"].tolist() == ["b", "chr2:1-100"]
    assert df["interactions"].tolist() == [10, 3]


def test_empty_report_has_columns():
    df = interaction_report([])
    assert list(df.columns) == REPORT_COLUMNS
    assert len(df) == 0


def test_probe_list_table_with_values(tmp_path):
    pl = ProbeList(name="Cluster 1", value_names=("R-value",))
    pl.add_probe(Probe("chr1", 1, 100, name="a"), [0.75])

    df = probe_list_table(pl)
    assert list(df.columns) == ["probe", "chromosome", "start", "end", "R-value"]
    assert df.loc[0, "R-value"] == 0.75

    path = write_report(df, tmp_path / "out" / "list.tsv")
    back = pd.read_csv(path, sep="\t")
    assert back["probe"].tolist() == ["a"]


def test_write_json(tmp_path):
    path = tmp_path / "sub" / "meta.json"
    write_json({"b": 1, "a": [1, 2]}, path)
    assert json.loads(path.read_text()) == {"a": [1, 2], "b": 1}
