import re

import numpy as np
import pytest

from multikmeans import TerminationCode, kmeans_pp_init, lloyd_run
from multikmeans.utils import assignment_matrix, centroid_distances, first_min_labels, row_norms2


def blobs(seed=0, per=30):
    rng = np.random.default_rng(seed)
    centers = np.array([[0.0, 0.0], [8.0, 8.0], [-8.0, 6.0]])
    return np.vstack([c + rng.standard_normal((per, 2)) for c in centers])


def test_assignment_rows_sum_to_one_with_ties():
    D = np.array([
        [1.0, 1.0, 2.0],
        [0.0, 3.0, 0.0],
        [5.0, 5.0, 5.0],
    ])
    P = assignment_matrix(D)
    np.testing.assert_allclose(P.sum(axis=1), 1.0)
    np.testing.assert_allclose(P[0], [0.5, 0.5, 0.0])
    np.testing.assert_allclose(P[1], [0.5, 0.0, 0.5])
    np.testing.assert_allclose(P[2], [1 / 3, 1 / 3, 1 / 3])


def test_labels_prefer_lowest_index():
    D = np.array([
        [1.0, 1.0, 2.0],
        [3.0, 0.0, 0.0],
        [2.0, 4.0, 1.0],
    ])
    assert first_min_labels(D).tolist() == [1, 2, 3]


def test_distance_expansion_matches_direct():
    rng = np.random.default_rng(0)
    X = rng.standard_normal((40, 5))
    C = rng.standard_normal((4, 5))
    direct = ((X[:, None, :] - C[None, :, :]) ** 2).sum(axis=2)
    expanded = centroid_distances(X, C) + row_norms2(X)[:, None]
    np.testing.assert_allclose(expanded, direct, atol=1e-10)


def test_pp_init_picks_distinct_in_range_rows():
    rng = np.random.default_rng(5)
    samples = rng.standard_normal((2, 6, 3))
    in_range = np.array([[True] * 4 + [False] * 2] * 2)
    samples[~in_range] = 0.0
    C = kmeans_pp_init(samples, in_range, 4, rng)
    assert C.shape == (8, 3)
    for r in range(2):
        block = C[r * 4:(r + 1) * 4]
        # Every in-range row chosen exactly once, nothing else
        got = sorted(map(tuple, block))
        want = sorted(map(tuple, samples[r, :4]))
        assert got == want


def test_pp_init_is_reproducible():
    samples = np.random.default_rng(0).standard_normal((3, 10, 2))
    in_range = np.ones((3, 10), dtype=bool)
    a = kmeans_pp_init(samples, in_range, 3, np.random.default_rng(9))
    b = kmeans_pp_init(samples, in_range, 3, np.random.default_rng(9))
    assert np.array_equal(a, b)


def test_pp_init_favors_far_rows():
    # One far-away row; the second centroid should almost always land on it
    samples = np.zeros((500, 5, 1))
    samples[:, 4, 0] = 100.0
    samples[:, :4, 0] = np.array([0.0, 0.1, 0.2, 0.3])
    in_range = np.ones((500, 5), dtype=bool)
    C = kmeans_pp_init(samples, in_range, 2, np.random.default_rng(0)).reshape(500, 2)
    has_far = (C == 100.0).any(axis=1)
    assert has_far.mean() > 0.99


def test_k1_converges_to_mean():
    X = blobs()
    mean = X.mean(axis=0)
    res = lloyd_run(X, float(row_norms2(X).sum()), X[:1].copy(), max_iter=100, tol=1e-6)
    assert res.code == TerminationCode.CONVERGED
    assert res.iterations <= 2
    np.testing.assert_allclose(res.centroids[0], mean, atol=1e-10)
    assert res.wcss == pytest.approx(float(((X - mean) ** 2).sum()), rel=1e-9)


def test_wcss_non_increasing(capsys):
    X = blobs(seed=3)
    C = X[[0, 30, 31]].copy()  # two seeds in the same blob, none in the third
    res = lloyd_run(X, float(row_norms2(X).sum()), C, run=2, max_iter=50, verbose=True)
    assert res.code == TerminationCode.CONVERGED
    out = capsys.readouterr().out
    wcss = [float(w) for w in re.findall(r"WCSS = ([^;\s]+)", out)]
    assert len(wcss) == res.iterations + 1
    assert out.splitlines()[0].startswith("Run 3, Iter 0")
    assert "Centroid change" in out.splitlines()[1]
    for prev, cur in zip(wcss, wcss[1:]):
        assert cur <= prev + 1e-9 * abs(prev)


def test_max_iter_reached():
    X = blobs()
    res = lloyd_run(X, float(row_norms2(X).sum()), X[[0, 1, 2]].copy(), max_iter=0)
    assert res.code == TerminationCode.MAX_ITER
    assert res.iterations == 0


def test_runaway_centroid():
    X = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 1.0]])
    C = np.array([[0.0, 0.0], [1.0, 1.0], [10.0, 10.0]])
    res = lloyd_run(X, float(row_norms2(X).sum()), C, max_iter=10)
    assert res.code == TerminationCode.RUNAWAY
    assert res.iterations == 1
    assert res.centroids.shape == (3, 2)


def test_equidistant_centroids_share_records():
    # Duplicate centroids split their records and are not runaway
    X = np.array([[0.0, 0.0], [0.0, 0.0], [5.0, 5.0], [5.0, 6.0]])
    C = np.array([[0.0, 0.0], [0.0, 0.0], [5.0, 5.0]])
    res = lloyd_run(X, float(row_norms2(X).sum()), C, max_iter=10)
    assert res.code == TerminationCode.CONVERGED
    np.testing.assert_allclose(res.centroids, [[0.0, 0.0], [0.0, 0.0], [5.0, 5.5]])
