#!/usr/bin/env python3
import argparse
from typing import List, Optional
import numpy as np

from matrix_io import FORMATS, read_matrix, write_matrix
from multikmeans import KMeansParams, MultiRunKMeans, NoConvergedRunError
from multikmeans import KMeansStatistics, TERMINATION_LABELS, TerminationCode


def arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Multi-run k-means clustering")
    # Input matrix + number of centroids
    ap.add_argument("-X", "--X", required=True)
    ap.add_argument("-k", "--k", type=int, required=True)
    # Runs and convergence
    ap.add_argument("--runs", type=int, default=10)
    ap.add_argument("--maxi", type=int, default=1000)
    ap.add_argument("--tol", type=float, default=1e-6)
    ap.add_argument("--samp", type=int, default=50)
    # Outputs
    ap.add_argument("-C", "--C", default="C.mtx")
    ap.add_argument("--isY", type=int, default=0, choices=[0, 1])
    ap.add_argument("-Y", "--Y", default="Y.mtx")
    ap.add_argument("--fmt", default="text", choices=FORMATS)
    ap.add_argument("--verb", type=int, default=0, choices=[0, 1])

    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--workers", type=int, default=None)
    return ap.parse_args(argv)


def print_statistics(stats: KMeansStatistics) -> None:
    print("-"*70)
    for code in (TerminationCode.CONVERGED, TerminationCode.MAX_ITER, TerminationCode.RUNAWAY):
        label = f"Number of {TERMINATION_LABELS[code]} runs"
        print(f"{label:40s} | {stats.counts.get(code, 0):6d}")
    if stats.converged > 0:
        print(f"{'Best run':40s} | {stats.best_run + 1:6d}")
        print(f"{'Best WCSS':40s} | {stats.best_wcss:.10g}")
        print(f"{'Avg WCSS':40s} | {stats.avg_wcss:.10g}")
        print(f"{'Worst WCSS':40s} | {stats.worst_wcss:.10g}")
    print("-"*70)


def main(argv: Optional[List[str]] = None) -> None:
    args = arguments(argv)

    X = read_matrix(args.X)
    print(f"[Data] {args.X} shape={X.shape}")

    params = KMeansParams(
        k=args.k,
        runs=args.runs,
        max_iter=args.maxi,
        tol=args.tol,
        samp=args.samp,
        seed=args.seed,
        workers=args.workers,
        verbose=bool(args.verb),
        progress=not args.verb
    )
    km = MultiRunKMeans(params)
    try:
        km.fit(X)
    except NoConvergedRunError as exc:
        print_statistics(exc.stats)
        raise SystemExit(str(exc)) from exc
    print_statistics(km.stats)

    write_matrix(km.centroids, args.C, args.fmt)
    print(f"[OK] centroids: {args.C} shape={km.centroids.shape}")
    if args.isY:
        Y = km.labels(X).astype(np.float64)
        write_matrix(Y, args.Y, args.fmt)
        print(f"[OK] labels:    {args.Y} shape={(Y.shape[0], 1)}")


if __name__ == "__main__":
    main()
