from __future__ import annotations
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import numpy as np
from tqdm import tqdm

from .base import KMeansStatistics, NoConvergedRunError, RunResult, TerminationCode
from .kmeans import kmeans_pp_init, lloyd_run
from .sampler import SampleMaps, build_sample_maps
from .utils import centroid_distances, first_min_labels, row_norms2


@dataclass
class KMeansParams:
    k: int
    runs: int = 10
    max_iter: int = 1000
    tol: float = 1e-6
    samp: int = 50
    seed: Optional[int] = None
    workers: Optional[int] = None
    verbose: bool = False
    progress: bool = False


@dataclass
class KMeansResult:
    centroids: np.ndarray
    best_run: int
    wcss: float
    stats: KMeansStatistics
    runs: List[RunResult] = field(default_factory=list)


def summarize_runs(results: List[RunResult]) -> KMeansStatistics:
    """
    Count runs per termination code and compute best / average / worst WCSS
    over the converged runs. The best run is the lowest-indexed converged run
    whose WCSS equals the minimum.
    """
    tally = Counter(r.code for r in results)
    stats = KMeansStatistics(counts={code: tally.get(code, 0) for code in TerminationCode})
    ok = [r for r in results if r.code == TerminationCode.CONVERGED]
    if not ok:
        return stats
    wcss = np.array([r.wcss for r in ok])
    stats.best_wcss = float(wcss.min())
    stats.worst_wcss = float(wcss.max())
    stats.avg_wcss = float(wcss.mean())
    for r in sorted(ok, key=lambda r: r.run):
        if r.wcss == stats.best_wcss:
            stats.best_run = r.run
            break
    return stats


def select_best_run(
    results: List[RunResult],
    stats: Optional[KMeansStatistics] = None
) -> Tuple[RunResult, KMeansStatistics]:
    if stats is None:
        stats = summarize_runs(results)
    if stats.converged == 0:
        raise NoConvergedRunError(stats)
    best = next(r for r in results if r.run == stats.best_run)
    return best, stats


def assign_labels(X: np.ndarray, C: np.ndarray) -> np.ndarray:
    """1-based nearest-centroid label per row of X; ties go to the lowest index."""
    return first_min_labels(centroid_distances(np.asarray(X, dtype=np.float64), C))


class MultiRunKMeans:
    """
    k-means with several independent randomized runs.

    Pipeline: per-run record sampling -> k-means++ seeding from the samples
    (all runs at once) -> Lloyd iterations per run in a thread pool -> pick the
    converged run with the lowest WCSS.
    """
    def __init__(self, params: KMeansParams):
        self.p = params
        self.sample_maps: Optional[SampleMaps] = None
        self.all_centroids: Optional[np.ndarray] = None
        self.results: List[RunResult] = []
        self.stats: Optional[KMeansStatistics] = None
        self.centroids: Optional[np.ndarray] = None
        self.best_run = -1

    def _check(self, X: np.ndarray) -> None:
        if X.ndim != 2:
            raise ValueError("X must be 2-D (n, f)")
        if X.shape[0] == 0 or X.shape[1] == 0:
            raise ValueError("X is empty")
        if self.p.k < 1:
            raise ValueError("k must be >= 1")
        if self.p.runs < 1:
            raise ValueError("runs must be >= 1")
        if self.p.max_iter < 0:
            raise ValueError("max_iter must be >= 0")
        if self.p.tol < 0:
            raise ValueError("tol must be >= 0")
        if self.p.samp < 1:
            raise ValueError("samp must be >= 1")

    def fit(self, X: np.ndarray) -> KMeansResult:
        X = np.asarray(X, dtype=np.float64)
        self._check(X)
        n, _ = X.shape
        k, runs = self.p.k, self.p.runs
        rng = np.random.default_rng(self.p.seed)

        self.sample_maps = build_sample_maps(n, runs, k * self.p.samp, rng)
        samples = self.sample_maps.samples(X)
        self.all_centroids = kmeans_pp_init(samples, self.sample_maps.in_range, k, rng)
        x_sq_sum = float(row_norms2(X).sum())

        def run_task(run: int) -> RunResult:
            # Each run owns rows run*k .. run*k + k - 1 of all_centroids
            rows = slice(run * k, (run + 1) * k)
            res = lloyd_run(
                X, x_sq_sum, self.all_centroids[rows].copy(), run=run,
                max_iter=self.p.max_iter, tol=self.p.tol, verbose=self.p.verbose
            )
            self.all_centroids[rows] = res.centroids
            return res

        results: List[Optional[RunResult]] = [None] * runs
        with ThreadPoolExecutor(max_workers=self.p.workers) as pool:
            futures = {pool.submit(run_task, r): r for r in range(runs)}
            done = as_completed(futures)
            if self.p.progress:
                done = tqdm(done, total=runs, desc="k-means runs")
            for fut in done:
                results[futures[fut]] = fut.result()
        self.results = results

        self.stats = summarize_runs(results)
        best, _ = select_best_run(results, self.stats)
        self.best_run = best.run
        self.centroids = best.centroids
        return KMeansResult(
            centroids=best.centroids,
            best_run=best.run,
            wcss=best.wcss,
            stats=self.stats,
            runs=results
        )

    def labels(self, X: np.ndarray) -> np.ndarray:
        if self.centroids is None:
            raise ValueError("fit() must succeed before labels()")
        return assign_labels(X, self.centroids)
