"""
Per-run random subsets of the records, used to seed k-means++.

Each run gets a fixed-size "sample block" of record ids. When the requested
sample is smaller than the data, every record is kept independently with
probability p = approx_sample_size / num_records: the gaps between kept
records are geometric, so one geometric draw per slot followed by a running
sum along the slot axis yields the kept record positions directly, without
touching the data. The block is sized at mean + 10 standard deviations of the
kept count, so it practically never runs short; slots that run past the last
record are marked out of range and point to a zero sentinel row instead of
being dropped, which keeps every run's block the same shape.
"""
from __future__ import annotations
from dataclasses import dataclass
import math
import numpy as np

from .utils import gather_rows


@dataclass
class SampleMaps:
    # record_ids[r, j] is the record held by slot j of run r, or num_records
    # (the sentinel) when the slot is out of range
    record_ids: np.ndarray
    in_range: np.ndarray
    block_size: int
    num_records: int

    @property
    def num_runs(self) -> int:
        return self.record_ids.shape[0]

    @property
    def run_ids(self) -> np.ndarray:
        """Owning run of every slot (runs stacked), -1 for out-of-range slots."""
        owner = np.repeat(np.arange(self.num_runs), self.block_size)
        return np.where(self.in_range.ravel(), owner, -1)

    def samples(self, X: np.ndarray) -> np.ndarray:
        """Sampled rows of X as a (runs, block_size, f) array."""
        return gather_rows(X, self.record_ids)


def sample_block_size(num_records: int, approx_sample_size: int) -> int:
    if approx_sample_size >= num_records:
        return num_records
    return int(approx_sample_size + round(10.0 * math.sqrt(approx_sample_size)))


def build_sample_maps(
    num_records: int,
    num_samples: int,
    approx_sample_size: int,
    rng: np.random.Generator
) -> SampleMaps:
    if num_records <= 0 or num_samples <= 0 or approx_sample_size <= 0:
        raise ValueError("num_records, num_samples and approx_sample_size must be positive")

    block = sample_block_size(num_records, approx_sample_size)
    if approx_sample_size < num_records:
        p = approx_sample_size / num_records
        gaps = rng.geometric(p, size=(num_samples, block))
        positions = np.cumsum(gaps, axis=1)  # 1-based record positions
        in_range = positions <= num_records
        record_ids = np.where(in_range, positions - 1, num_records).astype(np.int64)
    else:
        # Every record, for every run
        record_ids = np.tile(np.arange(num_records, dtype=np.int64), (num_samples, 1))
        in_range = np.ones((num_samples, block), dtype=bool)
    return SampleMaps(record_ids, in_range, block, num_records)
