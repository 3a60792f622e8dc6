from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Sequence

from .cluster import ClusterSource, InteractionClusterMatrix
from .contacts import ContactSource
from .correction import correct, theoretical_test_count
from .counter import MAX_INTERACTIONS, InteractionCounter
from .filters import NO_MAX_DISTANCE, FilterBounds, FilterEngine, passes
from .interactions import InteractionProbePair, unpack_key
from .probe_index import ProbeIndex
from .probes import Probe, ProbeList, find_common_parent
from .progress import (
    CancellationToken,
    InteractionCapacityWarning,
    ListenerRegistry,
    ProgressListener,
    ProgressReporter,
)
from .strength import StrengthCalculator

logger = logging.getLogger(__name__)

# max_value() never reports more than this
MAX_DISPLAY_VALUE = 100.0


class HeatmapMatrix:
    """Scored, filterable probe-by-probe interaction set for one dataset.

    The build (marginal totals, pairwise scan, scoring, multiple-testing
    correction) runs once, normally on a background worker via start(). The
    finished interactions are published in one assignment and never modified
    afterwards; only the filter layer reacts to user changes.

    The initial bounds given here are applied while building, so they decide
    what is ever scored and corrected. Current bounds (the set_* methods) can
    tighten them later without a rebuild.
    """

    def __init__(
        self,
        source: ContactSource,
        probe_lists: Sequence[ProbeList],
        *,
        min_distance: int = 0,
        max_distance: int = NO_MAX_DISTANCE,
        min_strength: float = 0.0,
        max_significance: float = 1.0,
        min_absolute: int = 0,
        correct_linkage: bool = False,
        max_interactions: int = MAX_INTERACTIONS,
    ) -> None:
        self.source = source
        self.index = ProbeIndex(probe_lists)
        self.correct_linkage = bool(correct_linkage)
        self.max_interactions = int(max_interactions)
        self.initial = FilterBounds(
            min_distance=int(min_distance),
            max_distance=int(max_distance),
            min_strength=float(min_strength),
            max_significance=float(max_significance),
            min_absolute=int(min_absolute),
        )

        self._interactions: tuple[InteractionProbePair, ...] | None = None
        self._max_value = 0.0
        self._cluster: ClusterSource | None = None
        self._cluster_r_value = 0.0

        self.filters = FilterEngine(self.initial, lambda: self._interactions)
        self.progress_listeners: ListenerRegistry[ProgressListener] = ListenerRegistry()
        self._reporter = ProgressReporter(self.progress_listeners)
        self.token = CancellationToken()
        self._executor: ThreadPoolExecutor | None = None

    # -- listeners ---------------------------------------------------------

    def add_progress_listener(self, listener: ProgressListener) -> ProgressListener:
        return self.progress_listeners.add(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        self.progress_listeners.remove(listener)

    def add_filter_listener(self, listener):
        return self.filters.listeners.add(listener)

    def remove_filter_listener(self, listener) -> None:
        self.filters.listeners.remove(listener)

    # -- build -------------------------------------------------------------

    def start(self) -> Future:
        """Run the build on this matrix's worker thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="heatmap")
        return self._executor.submit(self.run)

    def cancel(self) -> None:
        self.token.cancel()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def run(self, token: CancellationToken | None = None) -> tuple[InteractionProbePair, ...] | None:
        """Build the interaction set. Returns None (and notifies) if cancelled."""
        token = token or self.token
        try:
            result = self._build(token)
        except Exception as e:
            self._reporter.exception(e)
            raise

        if result is None:
            token.reset()
            self._reporter.cancelled()
            return None

        self.filters.publish(lambda: setattr(self, "_interactions", result))
        logger.info("Interaction set ready: %d interactions", len(result))
        self._reporter.complete("heatmap", self)
        return result

    def _build(self, token: CancellationToken) -> tuple[InteractionProbePair, ...] | None:
        index = self.index
        n = len(index)
        initial = self.initial

        counter = InteractionCounter(
            index,
            self.source,
            max_distance=initial.max_distance,
            max_interactions=self.max_interactions,
            reporter=self._reporter,
            token=token,
        )

        totals = counter.marginal_totals()
        if totals is None:
            return None
        cis, trans = totals

        total_tests = theoretical_test_count(index, initial.max_distance)
        logger.info("Scanning %d probes; correcting for %d tests", n, total_tests)

        calc = StrengthCalculator(self.source, correct_linkage=self.correct_linkage)
        retained: list[InteractionProbePair] = []
        max_value = 0.0
        warned = False

        for _, counts in counter.pairwise_counts():
            for key, absolute in counts.items():
                if absolute < initial.min_absolute:
                    continue

                i, j = unpack_key(key, n)
                a = index[i]
                b = index[j]
                s = calc.calculate(
                    absolute,
                    int(cis[a.index]),
                    int(trans[a.index]),
                    int(cis[b.index]),
                    int(trans[b.index]),
                    a.probe,
                    b.probe,
                )

                # Quick rejections before building a pair object. A raw p-value
                # over the ceiling can only get worse once corrected.
                if s.obs_exp < initial.min_strength:
                    continue
                if initial.max_significance < 1 and s.p_value > initial.max_significance:
                    continue

                pair = InteractionProbePair(
                    a.probe, a.index, b.probe, b.index, float(s.obs_exp), int(absolute), s.p_value
                )
                if not passes(pair, initial):
                    continue

                if len(retained) >= self.max_interactions:
                    if not warned:
                        self._reporter.warning(
                            InteractionCapacityWarning(
                                f"More than {self.max_interactions} interactions passed the filters. "
                                "Showing as many as possible"
                            )
                        )
                        warned = True
                    continue

                retained.append(pair)
                if s.obs_exp > max_value:
                    max_value = s.obs_exp

        if counter.cancelled:
            return None

        corrected = correct(retained, total_tests, initial.max_significance)
        self._max_value = max_value
        return tuple(corrected)

    # -- results -----------------------------------------------------------

    @property
    def probe_count(self) -> int:
        return self.index.probe_count

    @property
    def interactions(self) -> tuple[InteractionProbePair, ...] | None:
        return self._interactions

    def filtered_interactions(self) -> tuple[InteractionProbePair, ...]:
        return self.filters.filtered()

    def max_value(self) -> float:
        return min(self._max_value, MAX_DISPLAY_VALUE)

    # -- filters -----------------------------------------------------------

    def set_min_distance(self, value: int) -> int:
        return self.filters.set_min_distance(value)

    def set_max_distance(self, value: int) -> int:
        return self.filters.set_max_distance(value)

    def set_min_strength(self, value: float) -> float:
        return self.filters.set_min_strength(value)

    def set_max_significance(self, value: float) -> float:
        return self.filters.set_max_significance(value)

    def set_min_absolute(self, value: int) -> int:
        return self.filters.set_min_absolute(value)

    def set_probe_filter_list(self, probes: ProbeList | Iterable[Probe] | None) -> None:
        self.filters.set_probe_filter(probes)

    @property
    def current(self) -> FilterBounds:
        return self.filters.current

    # -- clusters ----------------------------------------------------------

    def set_cluster(self, cluster: ClusterSource | None) -> None:
        self._cluster = cluster
        self.filters.listeners.notify(lambda l: l.cluster_changed(cluster))

    def set_cluster_r_value(self, r_value: float) -> None:
        self._cluster_r_value = float(r_value)
        self.filters.listeners.notify(lambda l: l.cluster_r_value_changed(self._cluster_r_value))

    @property
    def cluster(self) -> ClusterSource | None:
        return self._cluster

    @property
    def cluster_r_value(self) -> float:
        return self._cluster_r_value

    def cluster_matrix(self) -> InteractionClusterMatrix:
        """Correlation builder over the currently filtered interactions."""
        return InteractionClusterMatrix(self.filtered_interactions(), self.index.probe_count)

    # -- export ------------------------------------------------------------

    def probe_list_from_current_interactions(self) -> ProbeList:
        """Every probe touched by a currently filtered interaction, once each."""
        common = find_common_parent(self.index.probe_lists)
        out = ProbeList(
            name="Filtered HiC hits",
            description=f"HiC hits from {common.name}",
            parent=common,
        )

        seen: set[Probe] = set()
        for pair in self.filtered_interactions():
            for probe in (pair.probe1, pair.probe2):
                if probe not in seen:
                    out.add_probe(probe)
                    seen.add(probe)
        return out

    def probe_lists_from_clusters(self, min_size: int, start: int, end: int) -> ProbeList | None:
        """One child list per connected cluster in the [start, end) window.

        ``start`` and ``end`` are positions along the concatenated cluster
        order (cumulative probe counts), as laid out on a clustered heatmap.
        """
        if self._cluster is None:
            return None

        connected = self._cluster.connected_clusters(self._cluster_r_value)
        common = find_common_parent(self.index.probe_lists)
        all_list = ProbeList(
            name="HiC Clusters",
            description=f"HiC Clusters with R > {self._cluster_r_value}",
            parent=common,
        )

        ordered = self.index.originally_ordered()
        seen: set[Probe] = set()
        position = 0

        for number, cl in enumerate(connected, start=1):
            size = len(cl.indices)
            position += size

            if position - size < start:
                continue
            if position > end:
                break
            if size < min_size:
                continue

            probes = sorted((ordered[i] for i in cl.indices), key=Probe.sort_key)
            unique = [probes[0]]
            for probe in probes[1:]:
                if probe != unique[-1]:
                    unique.append(probe)
            if len(unique) < min_size:
                continue

            child = ProbeList(
                name=f"Cluster {number}",
                description=f"HiC cluster list number {number}",
                parent=all_list,
                value_names=("R-value",),
            )
            for probe in unique:
                child.add_probe(probe, [cl.r_value])
                if probe not in seen:
                    all_list.add_probe(probe)
                    seen.add(probe)

        return all_list
