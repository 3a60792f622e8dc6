from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from .contacts import PAIR_COLUMNS
from .probes import GenomicBins
from .reporting import ensure_dir, write_json

# (bin i, bin j) on the first chromosome with extra contacts
DEFAULT_LOOPS = ((8, 20), (30, 44))


def make_synthetic_pairs(
    n_bins: int,
    *,
    binsize: int,
    chroms: Sequence[str] = ("chr1", "chr2"),
    seed: int = 0,
    bandwidth: int = 16,
    scale: float = 40.0,
    decay: float = 3.0,
    loops: Sequence[tuple[int, int]] = DEFAULT_LOOPS,
    loop_count: float = 30.0,
    trans_rate: float = 0.05,
    read_length: int = 50,
) -> pd.DataFrame:
    """Random read pairs over fixed-width bins.

    Cis contacts follow an exponential distance decay within ``bandwidth``
    bins; the ``loops`` pixels on the first chromosome get ``loop_count``
    extra contacts on top. Trans contacts are a flat Poisson background.
    Each non-empty pixel becomes one row with a count, both ends placed at a
    random offset inside their bins (1-based inclusive coordinates).
    """
    if read_length > binsize:
        raise ValueError(f"read_length ({read_length}) must fit in a bin ({binsize})")

    rng = np.random.default_rng(int(seed))
    n = int(n_bins)
    loop_set = {(min(i, j), max(i, j)) for i, j in loops}

    rows = []

    def _end(b: int) -> tuple[int, int]:
        s = b * binsize + 1 + int(rng.integers(0, binsize - read_length + 1))
        return s, s + read_length - 1

    for c, chrom in enumerate(chroms):
        for i in range(n):
            for j in range(i, min(n, i + bandwidth + 1)):
                lam = scale * np.exp(-(j - i) / float(decay))
                if c == 0 and (i, j) in loop_set:
                    lam += loop_count
                k = int(rng.poisson(lam))
                if k == 0:
                    continue
                s1, e1 = _end(i)
                s2, e2 = _end(j)
                rows.append((chrom, s1, e1, chrom, s2, e2, k))

    for a in range(len(chroms)):
        for b in range(a + 1, len(chroms)):
            counts = rng.poisson(trans_rate, size=(n, n))
            for i, j in zip(*np.nonzero(counts)):
                s1, e1 = _end(int(i))
                s2, e2 = _end(int(j))
                rows.append((chroms[a], s1, e1, chroms[b], s2, e2, int(counts[i, j])))

    return pd.DataFrame(rows, columns=PAIR_COLUMNS)


def write_pairs(pairs: pd.DataFrame, out_path: str | Path) -> None:
    out_path = Path(out_path)
    ensure_dir(out_path.parent)
    pairs.loc[:, PAIR_COLUMNS].to_csv(out_path, sep="\t", header=False, index=False)


def write_probes_bed(bins: Sequence[GenomicBins], out_path: str | Path) -> None:
    out_path = Path(out_path)
    ensure_dir(out_path.parent)

    lines = []
    for gb in bins:
        for s, e, b in gb.to_dataframe()[["start", "end", "bin"]].itertuples(index=False):
            lines.append(f"{gb.chrom}\t{int(s)}\t{int(e)}\t{gb.chrom}_{int(b)}\n")

    out_path.write_text("".join(lines))


def synth_dataset(
    out_dir: str | Path,
    *,
    n_bins: int = 64,
    binsize: int = 10_000,
    chroms: Sequence[str] = ("chr1", "chr2"),
    seed: int = 0,
) -> dict[str, Path]:
    out_dir = ensure_dir(out_dir)

    bins = [GenomicBins(chrom=c, start=0, binsize=int(binsize), n_bins=int(n_bins)) for c in chroms]

    pairs = make_synthetic_pairs(n_bins=int(n_bins), binsize=int(binsize), chroms=chroms, seed=seed)
    pairs_path = out_dir / "pairs.tsv"
    write_pairs(pairs, pairs_path)

    probes_path = out_dir / "probes.bed"
    write_probes_bed(bins, probes_path)

    meta = {
        "chroms": list(chroms),
        "binsize": int(binsize),
        "n_bins": int(n_bins),
        "seed": int(seed),
        "loops": [list(l) for l in DEFAULT_LOOPS],
        "n_pairs": int(len(pairs)),
        "pairs_format": "TSV (chrom1,start1,end1,chrom2,start2,end2,count), 1-based inclusive",
        "probes_format": "BED (chrom,start,end,name), 0-based half-open",
    }
    write_json(meta, out_dir / "meta.json")

    return {
        "pairs": pairs_path,
        "probes": probes_path,
        "meta": out_dir / "meta.json",
    }
