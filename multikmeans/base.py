from enum import IntEnum
from dataclasses import dataclass, field
from typing import Dict
import numpy as np


class TerminationCode(IntEnum):
    RUNNING = 0
    CONVERGED = 1
    MAX_ITER = 2
    RUNAWAY = 3


@dataclass
class RunResult:
    run: int
    centroids: np.ndarray
    wcss: float = 0.0
    code: TerminationCode = TerminationCode.RUNNING
    iterations: int = 0


@dataclass
class KMeansStatistics:
    counts: Dict[TerminationCode, int] = field(default_factory=dict)
    best_run: int = -1
    best_wcss: float = 0.0
    avg_wcss: float = 0.0
    worst_wcss: float = 0.0

    @property
    def converged(self) -> int:
        return self.counts.get(TerminationCode.CONVERGED, 0)

    @property
    def incomplete(self) -> int:
        return self.counts.get(TerminationCode.MAX_ITER, 0)

    @property
    def failed(self) -> int:
        return self.counts.get(TerminationCode.RUNAWAY, 0)


class NoConvergedRunError(RuntimeError):
    def __init__(self, stats: KMeansStatistics):
        super().__init__(
            "No output is produced. "
            "Try increasing the number of iterations and/or runs."
        )
        self.stats = stats
