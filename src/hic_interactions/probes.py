from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

FORWARD = 1
REVERSE = -1
UNKNOWN = 0


def chromosome_sort_key(name: str) -> tuple[int, int, str]:
    """Ordering key for chromosome names.

    Numeric names sort numerically and before text names; text names sort
    lexically. A leading "pseudo" (used for artificial assemblies) is ignored.
    """
    n = name[6:] if name.startswith("pseudo") else name
    try:
        return (0, int(n), "")
    except ValueError:
        return (1, 0, n)


@dataclass(frozen=True)
class Probe:
    """An immutable genomic interval, 1-based inclusive."""

    chromosome: str
    start: int
    end: int
    strand: int = UNKNOWN
    name: str | None = None

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Probe end ({self.end}) is before start ({self.start})")

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def sort_key(self) -> tuple:
        return (chromosome_sort_key(self.chromosome), self.start, self.end, self.name or "")

    def __lt__(self, other: Probe) -> bool:
        return self.sort_key() < other.sort_key()

    def overlaps(self, start: int, end: int) -> bool:
        return start <= self.end and end >= self.start

    def __str__(self) -> str:
        if self.name:
            return self.name
        return f"{self.chromosome}:{self.start}-{self.end}"


class ProbeList:
    """An ordered collection of probes with an optional parent list.

    Lists are compared by identity. A list without a parent is the root probe
    set every derived list descends from. Each probe may carry one value per
    entry in ``value_names``.
    """

    def __init__(
        self,
        probes: Iterable[Probe] = (),
        *,
        name: str = "All probes",
        description: str = "",
        parent: ProbeList | None = None,
        value_names: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.description = description
        self.parent = parent
        self.value_names = tuple(value_names)
        self._probes: list[Probe] = []
        self._values: dict[int, tuple[float, ...]] = {}
        self.children: list[ProbeList] = []
        if parent is not None:
            parent.children.append(self)
        for p in probes:
            self.add_probe(p)

    def add_probe(self, probe: Probe, values: Sequence[float] | None = None) -> None:
        if values is not None:
            if len(values) != len(self.value_names):
                raise ValueError(
                    f"Expected {len(self.value_names)} values for {probe}, got {len(values)}"
                )
            self._values[len(self._probes)] = tuple(float(v) for v in values)
        self._probes.append(probe)

    @property
    def probes(self) -> tuple[Probe, ...]:
        return tuple(self._probes)

    def values_for(self, position: int) -> tuple[float, ...] | None:
        return self._values.get(position)

    def ancestors(self) -> list[ProbeList]:
        """This list followed by each parent up to the root."""
        out = [self]
        current = self
        while current.parent is not None:
            current = current.parent
            out.append(current)
        return out

    def __len__(self) -> int:
        return len(self._probes)

    def __iter__(self):
        return iter(self._probes)

    def __repr__(self) -> str:
        return f"ProbeList(name={self.name!r}, n={len(self)})"


def find_common_parent(lists: Sequence[ProbeList]) -> ProbeList:
    """Closest list that is an ancestor of (or equal to) every list supplied."""
    if not lists:
        raise ValueError("Need at least one probe list")
    if len(lists) == 1:
        return lists[0]

    others = [set(id(a) for a in pl.ancestors()) for pl in lists[1:]]
    for candidate in lists[0].ancestors():
        if all(id(candidate) in s for s in others):
            return candidate

    raise ValueError("Probe lists do not share a common root")


@dataclass(frozen=True)
class GenomicBins:
    """Fixed-width bins over one chromosome, usable as a probe set."""

    chrom: str
    start: int
    binsize: int
    n_bins: int

    @property
    def end(self) -> int:
        return self.start + self.binsize * self.n_bins

    def to_dataframe(self) -> pd.DataFrame:
        starts = self.start + self.binsize * np.arange(self.n_bins, dtype=np.int64)
        ends = starts + self.binsize
        return pd.DataFrame(
            {
                "chrom": self.chrom,
                "start": starts,
                "end": ends,
                "bin": np.arange(self.n_bins, dtype=np.int64),
            }
        )

    def to_probes(self) -> list[Probe]:
        # bins are 0-based half-open [s, e); probes are 1-based inclusive
        return [
            Probe(self.chrom, int(s) + 1, int(e), name=f"{self.chrom}_{int(b)}")
            for s, e, b in self.to_dataframe()[["start", "end", "bin"]].itertuples(index=False)
        ]


def _read_bed(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(
        path,
        sep="\t",
        header=None,
        comment="#",
        usecols=lambda c: c in (0, 1, 2, 3, 5),
        dtype={0: str},
    )
    if df.empty:
        raise ValueError(f"Probe file is empty: {path}")
    df = df.rename(columns={0: "chrom", 1: "start", 2: "end", 3: "name", 5: "strand"})
    if (df["end"] <= df["start"]).any():
        bad = df.index[df["end"] <= df["start"]][0]
        raise ValueError(f"Invalid interval with end<=start at row {bad}")
    return df


def load_probes_bed(path: str | Path, *, name: str | None = None) -> ProbeList:
    """Read a BED file into a root ProbeList.

    BED intervals are 0-based half-open; they are converted to the 1-based
    inclusive coordinates probes use. Columns 4 (name) and 6 (strand) are
    optional.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))

    df = _read_bed(path)
    strands = {"+": FORWARD, "-": REVERSE}

    probes = []
    for row in df.itertuples(index=False):
        pname = getattr(row, "name", None)
        strand = strands.get(str(getattr(row, "strand", ".")), UNKNOWN)
        probes.append(
            Probe(
                str(row.chrom),
                int(row.start) + 1,
                int(row.end),
                strand=strand,
                name=None if pd.isna(pname) else str(pname),
            )
        )

    logger.info("Loaded %d probes from %s", len(probes), path)
    return ProbeList(probes, name=name or path.stem, description=f"Probes from {path.name}")
