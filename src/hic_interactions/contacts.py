from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import numpy as np
import pandas as pd

from .probes import Probe

logger = logging.getLogger(__name__)

PAIR_COLUMNS = ["chrom1", "start1", "end1", "chrom2", "start2", "end2", "count"]

# Resolution (bp) of the distance-decay linkage correction table.
DISTANCE_GROUP_LENGTH = 10_000

# Distance groups with fewer observations than this reuse the last
# well-supported correction factor.
MIN_GROUP_OBSERVATIONS = 10


@dataclass(frozen=True)
class ContactBlock:
    """Other-end intervals on one target chromosome, with multiplicities."""

    starts: np.ndarray
    ends: np.ndarray
    counts: np.ndarray

    def __len__(self) -> int:
        return int(self.starts.shape[0])

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def sorted(self) -> ContactBlock:
        order = np.lexsort((self.ends, self.starts))
        return ContactBlock(self.starts[order], self.ends[order], self.counts[order])


class HitCollection:
    """Contacts whose source end falls in a queried region, keyed by the
    chromosome of the other end."""

    def __init__(self, source_chromosome: str, blocks: Mapping[str, ContactBlock] | None = None):
        self.source_chromosome = source_chromosome
        self._blocks: dict[str, ContactBlock] = dict(blocks or {})

    def chromosome_names(self) -> list[str]:
        return sorted(self._blocks)

    def block(self, chromosome: str) -> ContactBlock:
        b = self._blocks.get(chromosome)
        if b is None:
            empty = np.zeros(0, dtype=np.int64)
            return ContactBlock(empty, empty, empty)
        return b

    def sorted_block(self, chromosome: str) -> ContactBlock:
        return self.block(chromosome).sorted()

    def count_for_chromosome(self, chromosome: str) -> int:
        return self.block(chromosome).total

    def __len__(self) -> int:
        return sum(len(b) for b in self._blocks.values())


class ContactSource(ABC):
    """What the interaction engine needs from a Hi-C dataset."""

    @abstractmethod
    def hits_for_probe(self, probe: Probe) -> HitCollection:
        """Contacts with one end overlapping ``probe``, grouped by other-end chromosome."""

    @abstractmethod
    def cis_count(self) -> int: ...

    @abstractmethod
    def trans_count(self) -> int: ...

    @abstractmethod
    def cis_count_for_chromosome(self, chromosome: str) -> int: ...

    @abstractmethod
    def trans_count_for_chromosome(self, chromosome: str) -> int: ...

    def correction_for_length(self, chromosome: str, shortest: int, longest: int) -> float:
        return 1.0


@dataclass(frozen=True)
class _SourceChromosome:
    src_start: np.ndarray
    src_end: np.ndarray
    hit_chrom: np.ndarray  # codes into PairedContacts._chrom_names
    hit_start: np.ndarray
    hit_end: np.ndarray
    count: np.ndarray
    max_length: int


class PairedContacts(ContactSource):
    """In-memory read-pair store.

    Each pair is held in both directions so that every fragment end can be
    looked up as a source. Totals count fragment ends: a cis pair adds two
    ends to its chromosome's cis total, a trans pair adds one end to each of
    the two chromosomes' trans totals.

    Args:
        pairs: DataFrame with columns chrom1, start1, end1, chrom2, start2, end2
            and optionally count (1-based inclusive coordinates)
        chrom_sizes: chromosome lengths used for the linkage correction table;
            defaults to the furthest coordinate seen on each chromosome
        distance_group_length: bp resolution of the linkage correction table
    """

    def __init__(
        self,
        pairs: pd.DataFrame,
        *,
        chrom_sizes: Mapping[str, int] | None = None,
        distance_group_length: int = DISTANCE_GROUP_LENGTH,
    ) -> None:
        df = _normalise_pairs(pairs)
        self.distance_group_length = int(distance_group_length)
        if self.distance_group_length <= 0:
            raise ValueError("distance_group_length must be positive")

        names = sorted(set(df["chrom1"]).union(df["chrom2"]))
        self._chrom_names = names
        codes = {n: i for i, n in enumerate(names)}
        c1 = df["chrom1"].map(codes).to_numpy(dtype=np.int64)
        c2 = df["chrom2"].map(codes).to_numpy(dtype=np.int64)
        s1 = df["start1"].to_numpy(dtype=np.int64)
        e1 = df["end1"].to_numpy(dtype=np.int64)
        s2 = df["start2"].to_numpy(dtype=np.int64)
        e2 = df["end2"].to_numpy(dtype=np.int64)
        w = df["count"].to_numpy(dtype=np.int64)

        # Both directions
        src_c = np.concatenate([c1, c2])
        src_s = np.concatenate([s1, s2])
        src_e = np.concatenate([e1, e2])
        hit_c = np.concatenate([c2, c1])
        hit_s = np.concatenate([s2, s1])
        hit_e = np.concatenate([e2, e1])
        ww = np.concatenate([w, w])

        self._by_chrom: dict[str, _SourceChromosome] = {}
        self._cis: dict[str, int] = {}
        self._trans: dict[str, int] = {}
        for code, name in enumerate(names):
            m = src_c == code
            if not m.any():
                continue
            order = np.argsort(src_s[m], kind="stable")
            ss = src_s[m][order]
            se = src_e[m][order]
            hc = hit_c[m][order]
            cnt = ww[m][order]
            self._by_chrom[name] = _SourceChromosome(
                src_start=ss,
                src_end=se,
                hit_chrom=hc,
                hit_start=hit_s[m][order],
                hit_end=hit_e[m][order],
                count=cnt,
                max_length=int((se - ss).max()) if ss.size else 0,
            )
            cis_mask = hc == code
            self._cis[name] = int(cnt[cis_mask].sum())
            self._trans[name] = int(cnt[~cis_mask].sum())

        self._corrections = self._build_linkage_corrections(df, chrom_sizes or {})

        logger.debug(
            "PairedContacts: %d pairs on %d chromosomes (cis ends=%d, trans ends=%d)",
            len(df),
            len(names),
            self.cis_count(),
            self.trans_count(),
        )

    @classmethod
    def from_pairs_file(cls, path: str | Path, **kwargs) -> PairedContacts:
        return cls(load_contact_pairs(path), **kwargs)

    @property
    def chromosomes(self) -> list[str]:
        return list(self._chrom_names)

    def hits_for_probe(self, probe: Probe) -> HitCollection:
        sc = self._by_chrom.get(probe.chromosome)
        if sc is None:
            return HitCollection(probe.chromosome)

        lo = int(np.searchsorted(sc.src_start, probe.start - sc.max_length, side="left"))
        hi = int(np.searchsorted(sc.src_start, probe.end, side="right"))
        sl = slice(lo, hi)
        m = sc.src_end[sl] >= probe.start

        hit_chrom = sc.hit_chrom[sl][m]
        hit_start = sc.hit_start[sl][m]
        hit_end = sc.hit_end[sl][m]
        count = sc.count[sl][m]

        blocks = {}
        for code in np.unique(hit_chrom):
            cm = hit_chrom == code
            blocks[self._chrom_names[int(code)]] = ContactBlock(hit_start[cm], hit_end[cm], count[cm])
        return HitCollection(probe.chromosome, blocks)

    def cis_count(self) -> int:
        return sum(self._cis.values())

    def trans_count(self) -> int:
        return sum(self._trans.values())

    def cis_count_for_chromosome(self, chromosome: str) -> int:
        return self._cis.get(chromosome, 0)

    def trans_count_for_chromosome(self, chromosome: str) -> int:
        return self._trans.get(chromosome, 0)

    def correction_for_length(self, chromosome: str, shortest: int, longest: int) -> float:
        """Mean linkage correction over the distance groups spanning
        [shortest, longest] on ``chromosome``."""
        table = self._corrections.get(chromosome)
        if table is None:
            return 1.0
        last = table.shape[0] - 1
        start = max(int(shortest) // self.distance_group_length, 0)
        end = int(longest) // self.distance_group_length
        idx = np.minimum(np.arange(start, max(end, start) + 1), last)
        return float(table[idx].mean())

    def _build_linkage_corrections(
        self, df: pd.DataFrame, chrom_sizes: Mapping[str, int]
    ) -> dict[str, np.ndarray]:
        # Observed cis fragment-length distribution relative to the
        # distribution expected for randomly placed read pairs.
        L = self.distance_group_length
        cis = df[df["chrom1"] == df["chrom2"]]
        out: dict[str, np.ndarray] = {}

        for name in self._chrom_names:
            if name in chrom_sizes:
                length = int(chrom_sizes[name])
            else:
                on = pd.concat(
                    [df.loc[df["chrom1"] == name, "end1"], df.loc[df["chrom2"] == name, "end2"]]
                )
                length = int(on.max()) if len(on) else 0
            n_groups = length // L + 1

            sub = cis[cis["chrom1"] == name]
            if sub.empty:
                out[name] = np.ones(n_groups, dtype=np.float64)
                continue

            frag = np.maximum(sub["end1"].to_numpy(), sub["end2"].to_numpy()) - np.minimum(
                sub["start1"].to_numpy(), sub["start2"].to_numpy()
            )
            group = np.minimum(frag // L, n_groups - 1).astype(np.int64)
            observed = np.bincount(
                group, weights=sub["count"].to_numpy(dtype=np.float64), minlength=n_groups
            )

            random_dist = (n_groups - np.arange(n_groups, dtype=np.float64)) / (
                n_groups * (n_groups + 1) / 2.0
            )
            ratio = (observed / observed.sum()) / random_dist

            corrections = np.empty(n_groups, dtype=np.float64)
            last_decent = -1.0
            for i in range(n_groups):
                c = float(ratio[i])
                if observed[i] < MIN_GROUP_OBSERVATIONS and last_decent > 0:
                    c = last_decent
                else:
                    last_decent = c
                corrections[i] = c
            out[name] = corrections

        return out


def _normalise_pairs(pairs: pd.DataFrame) -> pd.DataFrame:
    missing = [c for c in PAIR_COLUMNS[:6] if c not in pairs.columns]
    if missing:
        raise ValueError(f"Pairs table is missing columns: {', '.join(missing)}")

    df = pairs.loc[:, [c for c in PAIR_COLUMNS if c in pairs.columns]].copy()
    if "count" not in df.columns:
        df["count"] = 1
    df["chrom1"] = df["chrom1"].astype(str)
    df["chrom2"] = df["chrom2"].astype(str)
    for c in ("start1", "end1", "start2", "end2", "count"):
        df[c] = df[c].astype(np.int64)

    if (df["count"] < 0).any():
        raise ValueError("Pair counts must be non-negative")
    for s, e in (("start1", "end1"), ("start2", "end2")):
        if (df[e] < df[s]).any():
            bad = df.index[df[e] < df[s]][0]
            raise ValueError(f"Invalid interval with {e}<{s} at row {bad}")

    return df[df["count"] > 0].reset_index(drop=True)


def load_contact_pairs(path: str | Path) -> pd.DataFrame:
    """Load a tab-separated read-pairs file.

    Expected columns (lines starting with '#' are skipped):
      chrom1, start1, end1, chrom2, start2, end2[, count]

    Coordinates are 1-based inclusive. Returns the normalised pairs table.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))

    df = pd.read_csv(path, sep="\t", header=None, comment="#", dtype={0: str, 3: str})
    if df.empty:
        raise ValueError(f"Pairs file is empty: {path}")
    if df.shape[1] not in (6, 7):
        raise ValueError(f"Pairs file must have 6 or 7 columns; got {df.shape[1]} in {path}")
    df.columns = PAIR_COLUMNS[: df.shape[1]]

    return _normalise_pairs(df)


def load_cooler_pixels(path: str | Path, *, chrom: str | None = None) -> pd.DataFrame:
    """Turn the pixel table of a Cooler file (.cool) into a pairs table.

    Each pixel becomes one row spanning its two bins, with the pixel count as
    multiplicity. With ``chrom`` only that chromosome's cis block is read.

    Requires the optional dependency 'cooler'.
    """

    try:
        import cooler  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError(
            "Reading .cool contact maps requires the optional dependency 'cooler'. "
            "Install with: pip install 'hic-interactions[hic]' (or pip install cooler)."
        ) from e

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    if path.suffix.lower() != ".cool":
        raise ValueError(f"Expected a .cool file; got: {path}")

    c = cooler.Cooler(str(path))
    if chrom is None:
        px = c.pixels(join=True)[:]
    else:
        px = c.matrix(balance=False, as_pixels=True, join=True).fetch(str(chrom))

    df = pd.DataFrame(
        {
            "chrom1": px["chrom1"].astype(str),
            "start1": px["start1"].astype(np.int64) + 1,
            "end1": px["end1"].astype(np.int64),
            "chrom2": px["chrom2"].astype(str),
            "start2": px["start2"].astype(np.int64) + 1,
            "end2": px["end2"].astype(np.int64),
            "count": px["count"].astype(np.int64),
        }
    )
    return _normalise_pairs(df)
