from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

from .contacts import ContactSource
from .interactions import pack_key
from .probe_index import ProbeIndex, ProbeWithIndex
from .progress import (
    PROGRESS_INTERVAL,
    CancellationToken,
    InteractionCapacityWarning,
    ListenerRegistry,
    ProgressReporter,
)

logger = logging.getLogger(__name__)

# Upper bound on distinct pairs held for one probe scan, and on the number
# of interactions retained overall.
MAX_INTERACTIONS = 2**31 - 1


def _same_coordinates(a: ProbeWithIndex, b: ProbeWithIndex) -> bool:
    pa, pb = a.probe, b.probe
    return pa.chromosome == pb.chromosome and pa.start == pb.start and pa.end == pb.end


class InteractionCounter:
    """Builds marginal totals and sparse pair counts for a ProbeIndex.

    Two separate passes over the probes: marginal cis/trans totals for every
    probe have to be complete before any pair can be normalised, so they are
    never fused with the pairwise scan.

    Args:
        index: sorted probe index
        source: contact data
        max_distance: if > 0, only contacts on a probe's own chromosome are scanned
        max_interactions: cap on distinct pairs held per probe scan
        reporter: progress fan-out (optional)
        token: cancellation flag polled every PROGRESS_INTERVAL probes and on
            every contact record
    """

    def __init__(
        self,
        index: ProbeIndex,
        source: ContactSource,
        *,
        max_distance: int = 0,
        max_interactions: int = MAX_INTERACTIONS,
        reporter: ProgressReporter | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        if max_interactions <= 0:
            raise ValueError("max_interactions must be positive")
        self.index = index
        self.source = source
        self.max_distance = int(max_distance)
        self.max_interactions = int(max_interactions)
        self.reporter = reporter or ProgressReporter(ListenerRegistry())
        self.token = token or CancellationToken()
        self.cancelled = False
        self.capped_probes = 0

    def marginal_totals(self) -> tuple[np.ndarray, np.ndarray] | None:
        """Pass 1: per-probe cis and trans contact totals, indexed by global index.

        Returns None if cancelled.
        """
        n = len(self.index)
        cis = np.zeros(n, dtype=np.int64)
        trans = np.zeros(n, dtype=np.int64)

        for p, pw in enumerate(self.index):
            if p % PROGRESS_INTERVAL == 0:
                self.reporter.updated("Getting probe total counts", p, n)
                if self.token.cancelled:
                    self.cancelled = True
                    return None

            hits = self.source.hits_for_probe(pw.probe)
            for chrom in hits.chromosome_names():
                c = hits.count_for_chromosome(chrom)
                if chrom == pw.probe.chromosome:
                    cis[pw.index] = c
                else:
                    trans[pw.index] += c

        return cis, trans

    def pairwise_counts(self) -> Iterator[tuple[int, dict[int, int]]]:
        """Pass 2: yield ``(sorted position, raw-count map)`` for every probe.

        Stops early, with ``cancelled`` set, when the token fires.
        """
        n = len(self.index)
        for p in range(n):
            if p % PROGRESS_INTERVAL == 0:
                self.reporter.updated(f"Processed {p} probes", p, n)
                if self.token.cancelled:
                    self.cancelled = True
                    return

            counts = self.count_probe(p)
            if counts is None:
                self.cancelled = True
                return
            yield p, counts

    def _credit(self, counts: dict[int, int], key: int, amount: int) -> bool:
        if key in counts:
            counts[key] += amount
            return True
        if len(counts) >= self.max_interactions:
            return False
        counts[key] = amount
        return True

    def count_probe(self, p: int) -> dict[int, int] | None:
        """Scan the contacts of the probe at sorted position ``p``.

        Keys are pack_key(p, x) and are only created when the global index at
        ``p`` is below the one at ``x``; the reverse pair is counted when the
        scan reaches ``x`` itself. Returns None if cancelled mid-scan.
        """
        index = self.index
        n = len(index)
        me = index[p]
        counts: dict[int, int] = {}
        capped = False

        hits = self.source.hits_for_probe(me.probe)

        for chrom in hits.chromosome_names():
            # Trans contacts can never pass a finite distance filter
            if self.max_distance > 0 and chrom != me.probe.chromosome:
                continue

            offset = index.chromosome_offset(chrom)
            if offset is None:
                continue

            block = hits.sorted_block(chrom)
            starts, ends, amounts = block.starts, block.ends, block.counts
            last = offset

            for r in range(len(block)):
                if self.token.cancelled:
                    return None

                rs = int(starts[r])
                re_ = int(ends[r])
                amount = int(amounts[r])

                chrom_done = False
                x = last
                while x < n:
                    other = index[x]
                    if other.probe.chromosome != chrom:
                        # records are sorted, so nothing later on this
                        # chromosome can match either
                        chrom_done = True
                        break

                    if other.probe.start > re_:
                        break

                    if other.probe.overlaps(rs, re_):
                        if me.index < other.index and other.probe != me.probe:
                            if not self._credit(counts, pack_key(p, x, n), amount):
                                capped = True

                        last = x

                        # Probes that follow and are duplicates of this one, or
                        # also overlap the record, take the same contact. A copy
                        # of the scanned probe itself (shared between input
                        # lists) is never its partner.
                        y = x + 1
                        while y < n:
                            nxt = index[y]
                            prev = index[y - 1]
                            if nxt.probe.chromosome != prev.probe.chromosome:
                                break
                            if _same_coordinates(nxt, prev) or nxt.probe.overlaps(rs, re_):
                                if me.index < nxt.index and nxt.probe != me.probe:
                                    if not self._credit(counts, pack_key(p, y, n), amount):
                                        capped = True
                                        break
                            else:
                                break
                            y += 1
                        break

                    x += 1

                if chrom_done:
                    break

        if capped:
            self.capped_probes += 1
            self.reporter.warning(
                InteractionCapacityWarning(
                    f"More than {self.max_interactions} interactions for probe {me.probe}; "
                    "further pairs were dropped"
                )
            )

        return counts
