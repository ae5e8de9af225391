from __future__ import annotations
import numpy as np

from .base import RunResult, TerminationCode
from .utils import assignment_matrix, centroid_distances


def kmeans_pp_init(
    samples: np.ndarray,
    in_range: np.ndarray,
    k: int,
    rng: np.random.Generator
) -> np.ndarray:
    """
    k-means++ seeding for all runs at once.

    samples: [runs, block, f] sampled records (zero rows where out of range)
    in_range: [runs, block] mask of real sample slots

    Returns the [k * runs, f] matrix of all centroids, where rows
    run*k .. run*k + k - 1 belong to that run.
    """
    runs, _, f = samples.shape
    all_centroids = np.zeros((k * runs, f), dtype=np.float64)
    run_idx = np.arange(runs)
    s_norm = np.einsum("rbf,rbf->rb", samples, samples)
    weight = in_range.astype(np.float64)
    # First centroid: uniform over the in-range slots
    min_dist = weight
    for i in range(k):
        # Unnormalized CDF per run, weighted by distance to the nearest centroid
        cdf = np.cumsum(min_dist, axis=1)
        threshold = rng.random(runs) * cdf[:, -1]
        # Lowest slot whose CDF reaches the threshold
        picks = np.sum(cdf < threshold[:, None], axis=1)
        centroids = samples[run_idx, picks]
        all_centroids[run_idx * k + i] = centroids

        c_norm = np.einsum("rf,rf->r", centroids, centroids)[:, None]
        dist = s_norm + c_norm - 2.0 * np.einsum("rbf,rf->rb", samples, centroids)
        dist = np.maximum(dist, 0.0) * weight
        min_dist = dist if i == 0 else np.minimum(min_dist, dist)
    return all_centroids


def lloyd_run(
    X: np.ndarray,
    x_sq_sum: float,
    C: np.ndarray,
    run: int = 0,
    max_iter: int = 1000,
    tol: float = 1e-6,
    verbose: bool = False
) -> RunResult:
    """
    Lloyd iterations for one run, starting from the centroids C.

    Stops when the relative WCSS improvement falls below tol (CONVERGED),
    after max_iter centroid updates (MAX_ITER), or when some centroid gets no
    records at all (RUNAWAY). x_sq_sum is the sum of squares of all of X.
    """
    C_old = C
    wcss = 0.0
    it = 0
    code = TerminationCode.RUNNING
    while code == TerminationCode.RUNNING:
        D = centroid_distances(X, C)
        minD = D.min(axis=1)
        wcss_old = wcss
        wcss = x_sq_sum + float(minD.sum())
        if verbose:
            msg = f"Run {run + 1}, Iter {it}: Centroid WCSS = {wcss:.10g}"
            if it > 0:
                change = float(np.sum((C - C_old) ** 2)) / C.shape[0]
                msg += f"; Centroid change (avg.sq.dist.) = {change:.10g}"
            print(msg)

        if it > 0 and (wcss_old - wcss) < tol * wcss:
            code = TerminationCode.CONVERGED
        elif it >= max_iter:
            code = TerminationCode.MAX_ITER
        else:
            it += 1
            P = assignment_matrix(D, minD)
            weight = P.sum(axis=0)
            if np.any(weight <= 0.0):
                code = TerminationCode.RUNAWAY
            else:
                C_old = C
                C = (P.T @ X) / weight[:, None]
    return RunResult(run=run, centroids=C, wcss=wcss, code=code, iterations=it)
