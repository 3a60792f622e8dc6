from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

import pandas as pd

from .interactions import InteractionProbePair
from .probes import ProbeList

REPORT_COLUMNS = [
    "probe1",
    "chromosome1",
    "start1",
    "end1",
    "probe2",
    "chromosome2",
    "start2",
    "end2",
    "distance",
    "obs_exp",
    "p_value",
    "interactions",
]


def ensure_dir(p: str | Path) -> Path:
    path = Path(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json(obj: Any, path: str | Path) -> None:
    path = Path(path)
    ensure_dir(path.parent)
    path.write_text(json.dumps(obj, indent=2, sort_keys=True))


def interaction_report(pairs: Sequence[InteractionProbePair]) -> pd.DataFrame:
    """One row per interaction; distance is left empty for trans pairs."""
    rows = []
    for pair in pairs:
        rows.append(
            {
                "probe1": str(pair.probe1),
                "chromosome1": pair.probe1.chromosome,
                "start1": pair.probe1.start,
                "end1": pair.probe1.end,
                "probe2": str(pair.probe2),
                "chromosome2": pair.probe2.chromosome,
                "start2": pair.probe2.start,
                "end2": pair.probe2.end,
                "distance": pair.distance() if pair.same_chromosome() else None,
                "obs_exp": pair.strength,
                "p_value": pair.significance,
                "interactions": pair.absolute,
            }
        )

    df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    df["distance"] = df["distance"].astype("Int64")
    return df


def probe_list_table(probe_list: ProbeList) -> pd.DataFrame:
    """Probes of a list with any per-probe values as extra columns."""
    rows = []
    for pos, probe in enumerate(probe_list.probes):
        row = {
            "probe": str(probe),
            "chromosome": probe.chromosome,
            "start": probe.start,
            "end": probe.end,
        }
        values = probe_list.values_for(pos)
        for name, v in zip(probe_list.value_names, values or ()):
            row[name] = v
        rows.append(row)
    columns = ["probe", "chromosome", "start", "end", *probe_list.value_names]
    return pd.DataFrame(rows, columns=columns)


def write_report(df: pd.DataFrame, path: str | Path) -> Path:
    path = Path(path)
    ensure_dir(path.parent)
    df.to_csv(path, sep="\t", index=False)
    return path
