from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from .interactions import InteractionProbePair
from .progress import (
    PROGRESS_INTERVAL,
    CancellationToken,
    ListenerRegistry,
    ProgressListener,
    ProgressReporter,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cluster:
    """A connected component over probe global indices."""

    indices: tuple[int, ...]
    r_value: float

    def __len__(self) -> int:
        return len(self.indices)


class ClusterSource(Protocol):
    """Anything that can split probes into connected components at a
    correlation threshold (normally a hierarchical clustering)."""

    def connected_clusters(self, r_value: float) -> Sequence[Cluster]: ...


class InteractionClusterMatrix:
    """Pairwise correlation between the interaction profiles of probes.

    Each probe gets a boolean profile over all probes (does it interact with
    probe j?). Two probes are similar when they interact with the same
    partners, measured with the phi coefficient. The diagonal is left at 0.
    The resulting symmetric matrix is what a clustering collaborator works on.
    """

    def __init__(self, interactions: Sequence[InteractionProbePair], probe_count: int) -> None:
        self.interactions = interactions
        self.probe_count = int(probe_count)
        self.correlation_matrix: np.ndarray | None = None
        self.listeners: ListenerRegistry[ProgressListener] = ListenerRegistry()
        self._reporter = ProgressReporter(self.listeners)
        self.token = CancellationToken()

    def cancel(self) -> None:
        self.token.cancel()

    def _profiles(self) -> np.ndarray:
        n = self.probe_count
        b = np.zeros((n, n), dtype=np.float32)
        if self.interactions:
            i = np.fromiter((p.index1 for p in self.interactions), dtype=np.int64)
            j = np.fromiter((p.index2 for p in self.interactions), dtype=np.int64)
            b[i, j] = 1
            b[j, i] = 1
        return b

    def run(self) -> np.ndarray | None:
        """Build the correlation matrix in blocks of rows. Returns None if cancelled."""
        n = self.probe_count
        self._reporter.updated("Making correlation matrix", 0, 1)
        b = self._profiles()

        ones = b.sum(axis=1, dtype=np.float64)
        zeros = n - ones
        spread = ones * zeros

        corr = np.zeros((n, n), dtype=np.float32)
        for r0 in range(0, n, PROGRESS_INTERVAL):
            self._reporter.updated("Making correlation matrix", r0, n)
            if self.token.cancelled:
                self.token.reset()
                self._reporter.cancelled()
                return None

            r1 = min(r0 + PROGRESS_INTERVAL, n)
            n11 = b[r0:r1] @ b.T
            n10 = ones[r0:r1, None] - n11
            n01 = ones[None, :] - n11
            n00 = n - n11 - n10 - n01
            denom = np.sqrt(spread[r0:r1, None] * spread[None, :])
            block = np.zeros_like(n11, dtype=np.float64)
            np.divide(n11 * n00 - n10 * n01, denom, out=block, where=denom > 0)
            corr[r0:r1] = block

        np.fill_diagonal(corr, 0)
        self.correlation_matrix = corr
        self.interactions = ()
        self._reporter.complete("interaction_cluster_matrix", self)
        return corr

    def cluster_value(self, ind1: Sequence[int], ind2: Sequence[int]) -> float:
        """Mean correlation between two groups of probes."""
        if self.correlation_matrix is None:
            raise RuntimeError("Correlation matrix has not been calculated")
        sub = self.correlation_matrix[np.ix_(list(ind1), list(ind2))]
        return float(sub.mean()) if sub.size else 0.0


class ThresholdClusters:
    """Connected components of the graph linking probes with correlation >= r.

    Components come back largest first (ties by lowest index); the r-value of
    a component is its mean internal correlation, 1.0 for singletons.
    """

    def __init__(self, correlation_matrix: np.ndarray) -> None:
        m = np.asarray(correlation_matrix, dtype=np.float64)
        if m.ndim != 2 or m.shape[0] != m.shape[1]:
            raise ValueError("Correlation matrix must be square")
        self.matrix = m

    def connected_clusters(self, r_value: float) -> list[Cluster]:
        adj = self.matrix >= float(r_value)
        np.fill_diagonal(adj, False)
        n_comp, labels = connected_components(csr_matrix(adj), directed=False)

        clusters = []
        for c in range(n_comp):
            members = np.flatnonzero(labels == c)
            if members.size > 1:
                sub = self.matrix[np.ix_(members, members)]
                r = float(sub[~np.eye(members.size, dtype=bool)].mean())
            else:
                r = 1.0
            clusters.append(Cluster(tuple(int(i) for i in members), r))

        clusters.sort(key=lambda cl: (-len(cl), cl.indices[0]))
        logger.debug("%d components at r >= %s", len(clusters), r_value)
        return clusters
