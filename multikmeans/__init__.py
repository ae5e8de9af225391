# Multi-run k-means package
from .base import KMeansStatistics, NoConvergedRunError, RunResult, TerminationCode
from .kmeans import kmeans_pp_init, lloyd_run
from .runner import (
    KMeansParams,
    KMeansResult,
    MultiRunKMeans,
    assign_labels,
    select_best_run,
    summarize_runs,
)
from .sampler import SampleMaps, build_sample_maps


TERMINATION_LABELS = {
    TerminationCode.RUNNING: "running",
    TerminationCode.CONVERGED: "successful",
    TerminationCode.MAX_ITER: "incomplete",
    TerminationCode.RUNAWAY: "failed"
}
