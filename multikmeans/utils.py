from __future__ import annotations
from typing import Optional
import numpy as np


def row_norms2(X: np.ndarray) -> np.ndarray:
    return np.einsum("ij,ij->i", X, X)


def centroid_distances(X: np.ndarray, C: np.ndarray) -> np.ndarray:
    """
    Squared distances from every row of X to every centroid, minus ||x||^2.

    The ||x||^2 term is the same for all centroids, so it does not change the
    nearest centroid; callers add it back (summed) when they need the WCSS.
    """
    c_norm = row_norms2(C)[None, :]
    return c_norm - 2.0 * (X @ C.T)


def assignment_matrix(
    D: np.ndarray,
    minD: Optional[np.ndarray] = None
) -> np.ndarray:
    if minD is None:
        minD = D.min(axis=1)
    P = (D <= minD[:, None]).astype(np.float64)
    # Equidistant centroids share the record equally
    return P / P.sum(axis=1, keepdims=True)


def first_min_labels(D: np.ndarray) -> np.ndarray:
    # 1-based index of the lowest-indexed nearest centroid
    is_min = D <= D.min(axis=1)[:, None]
    return np.argmax(is_min, axis=1).astype(np.int64) + 1


def gather_rows(X: np.ndarray, ids: np.ndarray) -> np.ndarray:
    """
    Fancy-index rows of X where an id equal to X.shape[0] is the sentinel
    for "no record" and yields a zero row.
    """
    padded = np.vstack([X, np.zeros((1, X.shape[1]), dtype=X.dtype)])
    return padded[ids]
