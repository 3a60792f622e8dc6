from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from .probes import Probe, ProbeList


@dataclass(frozen=True)
class ProbeWithIndex:
    probe: Probe
    index: int


class ProbeIndex:
    """Sorted, globally indexed view over one or more probe lists.

    Global indices are assigned while the input lists are concatenated, before
    sorting, so the same probe appearing in two lists keeps two indices. The
    sort is stable: identical probes stay in global-index order.
    """

    def __init__(self, probe_lists: Sequence[ProbeList]) -> None:
        if not probe_lists:
            raise ValueError("At least one probe list is required")

        self.probe_lists = tuple(probe_lists)
        indexed = []
        count = 0
        for pl in self.probe_lists:
            for probe in pl.probes:
                indexed.append(ProbeWithIndex(probe, count))
                count += 1

        if not indexed:
            raise ValueError("Probe lists contain no probes")

        self._entries: tuple[ProbeWithIndex, ...] = tuple(
            sorted(indexed, key=lambda pw: pw.probe.sort_key())
        )

        # chromosome -> first sorted position
        offsets: dict[str, int] = {}
        for pos, pw in enumerate(self._entries):
            offsets.setdefault(pw.probe.chromosome, pos)
        self._offsets = offsets

    @property
    def probe_count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, pos: int) -> ProbeWithIndex:
        return self._entries[pos]

    def __iter__(self) -> Iterator[ProbeWithIndex]:
        return iter(self._entries)

    def chromosome_offset(self, chromosome: str) -> int | None:
        return self._offsets.get(chromosome)

    @property
    def chromosomes(self) -> tuple[str, ...]:
        return tuple(self._offsets)

    def probes_per_chromosome(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for pw in self._entries:
            counts[pw.probe.chromosome] = counts.get(pw.probe.chromosome, 0) + 1
        return counts

    def originally_ordered(self) -> list[Probe]:
        """Probes in global-index (input) order."""
        out: list[Probe] = [None] * len(self._entries)  # type: ignore[list-item]
        for pw in self._entries:
            out[pw.index] = pw.probe
        return out

    def theoretical_test_count(self, *, cis_only: bool) -> int:
        """Size of the pairwise search space.

        With ``cis_only`` only same-chromosome pairs can ever be tested, so the
        count is the sum over chromosomes of C(k, 2); otherwise C(n, 2).
        """
        if cis_only:
            return sum(k * (k - 1) // 2 for k in self.probes_per_chromosome().values())
        n = len(self._entries)
        return n * (n - 1) // 2
