import numpy as np
import pytest

from hic_interactions.cluster import InteractionClusterMatrix, ThresholdClusters
from hic_interactions.interactions import InteractionProbePair
from hic_interactions.probes import Probe
from hic_interactions.progress import ProgressListener

PROBES = [Probe("1", i * 1000 + 1, i * 1000 + 100) for i in range(4)]


def _pair(i, j):
    return InteractionProbePair(PROBES[i], i, PROBES[j], j, 2.0, 5, 0.01)


class Recorder(ProgressListener):
    def __init__(self):
        self.cancels = 0
        self.completed = []

    def cancelled(self):
        self.cancels += 1

    def complete(self, tag, result):
        self.completed.append(tag)


def test_shared_partners_correlate():
    # 0 and 1 both talk to 2 and 3
    pairs = [_pair(0, 2), _pair(0, 3), _pair(1, 2), _pair(1, 3)]
    cm = InteractionClusterMatrix(pairs, 4)
    rec = cm.listeners.add(Recorder())

    corr = cm.run()
    assert corr.shape == (4, 4)
    assert np.allclose(np.diag(corr), 0)
    assert np.allclose(corr, corr.T)
    assert corr[0, 1] == pytest.approx(1.0)
    assert corr[2, 3] == pytest.approx(1.0)
    assert corr[0, 2] == pytest.approx(-1.0)
    assert rec.completed == ["interaction_cluster_matrix"]

    assert cm.cluster_value([0], [1]) == pytest.approx(1.0)
    assert cm.cluster_value([0, 1], [2, 3]) == pytest.approx(-1.0)


def test_probe_without_interactions_has_zero_correlation():
    cm = InteractionClusterMatrix([_pair(0, 1)], 4)
    corr = cm.run()
    assert np.all(corr[3] == 0)


def test_cluster_value_needs_matrix():
    cm = InteractionClusterMatrix([], 2)
    with pytest.raises(RuntimeError):
        cm.cluster_value([0], [1])


def test_cancel_before_run():
    cm = InteractionClusterMatrix([_pair(0, 1)], 4)
    rec = cm.listeners.add(Recorder())
    cm.cancel()

    assert cm.run() is None
    assert rec.cancels == 1
    assert cm.correlation_matrix is None
    assert not cm.token.cancelled


def test_threshold_clusters():
    corr = np.array(
        [
            [0.0, 0.9, 0.1, 0.0, 0.0],
            [0.9, 0.0, 0.0, 0.0, 0.0],
            [0.1, 0.0, 0.0, 0.8, 0.7],
            [0.0, 0.0, 0.8, 0.0, 0.6],
            [0.0, 0.0, 0.7, 0.6, 0.0],
        ]
    )
    clusters = ThresholdClusters(corr).connected_clusters(0.5)

    assert [c.indices for c in clusters] == [(2, 3, 4), (0, 1)]
    assert clusters[0].r_value == pytest.approx(0.7)
    assert clusters[1].r_value == pytest.approx(0.9)

    singles = ThresholdClusters(corr).connected_clusters(0.95)
    assert [c.indices for c in singles] == [(0,), (1,), (2,), (3,), (4,)]
    assert all(c.r_value == 1.0 for c in singles)


def test_threshold_clusters_needs_square_matrix():
    with pytest.raises(ValueError):
        ThresholdClusters(np.zeros((2, 3)))
