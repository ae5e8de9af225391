import json
from pathlib import Path
from typing import Dict, Optional
import numpy as np
from scipy.io import mmread, mmwrite


FORMATS = ("text", "csv", "mm", "binary")


def _check_fmt(fmt: str) -> None:
    if fmt not in FORMATS:
        raise ValueError(f"Unknown matrix format '{fmt}', expected one of {FORMATS}")


def mtd_path(path: str) -> Path:
    return Path(str(path) + ".mtd")


def read_mtd(path: str) -> Dict:
    """
    Read the JSON metadata file written next to a matrix (path + ".mtd").
    Returns an empty dict if it doesn't exist.
    """
    fp = mtd_path(path)
    if not fp.exists():
        return {}
    return json.loads(fp.read_text(encoding="utf-8"))


def _read_text(path: str) -> np.ndarray:
    """
    Read a matrix in "text" (cell) format.

    One nonzero per line:
      i j v
    with 1-based row index i and column index j. Zeros are not stored, so
    the shape comes from the .mtd metadata if present, otherwise from the
    largest indices seen.
    """
    rows, cols, vals = [], [], []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) != 3:
                raise ValueError(f"Malformed text-cell line in {path}: {line!r}")
            rows.append(int(parts[0]) - 1)
            cols.append(int(parts[1]) - 1)
            vals.append(float(parts[2]))
    meta = read_mtd(path)
    n = int(meta.get("rows", max(rows, default=-1) + 1))
    m = int(meta.get("cols", max(cols, default=-1) + 1))
    M = np.zeros((n, m), dtype=np.float64)
    M[rows, cols] = vals
    return M


def _write_text(M: np.ndarray, path: str) -> None:
    ii, jj = np.nonzero(M)
    with open(path, "w", encoding="utf-8") as f:
        for i, j in zip(ii, jj):
            f.write(f"{i + 1} {j + 1} {float(M[i, j])!r}\n")


def detect_format(path: str, default: str = "text") -> str:
    """
    Guess the format of an existing matrix file: the .mtd metadata wins,
    then the file suffix, then a Matrix Market banner on the first line.
    """
    fmt = read_mtd(path).get("format")
    if fmt:
        return fmt
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return "csv"
    if suffix == ".npy":
        return "binary"
    with open(path, "rb") as f:
        if f.read(14) == b"%%MatrixMarket":
            return "mm"
    return default


def read_matrix(path: str, fmt: Optional[str] = None) -> np.ndarray:
    if not Path(path).exists():
        raise FileNotFoundError(f"Input matrix not found: {path}")
    if fmt is None:
        fmt = detect_format(path)
    _check_fmt(fmt)
    if fmt == "text":
        M = _read_text(path)
    elif fmt == "csv":
        M = np.loadtxt(path, delimiter=",", ndmin=2)
    elif fmt == "mm":
        M = mmread(path)
        if hasattr(M, "toarray"):
            M = M.toarray()
    else:
        with open(path, "rb") as f:
            M = np.load(f)
    M = np.asarray(M, dtype=np.float64)
    if M.ndim == 1:
        M = M[:, None]
    return M


def write_matrix(M: np.ndarray, path: str, fmt: str = "text") -> None:
    """
    Write M to path in the given format, plus a path + ".mtd" JSON file with
    its shape, nonzero count and format.
    """
    _check_fmt(fmt)
    M = np.asarray(M)
    if M.ndim == 1:
        M = M[:, None]
    if fmt == "text":
        _write_text(M, path)
    elif fmt == "csv":
        np.savetxt(path, M, delimiter=",", fmt="%.17g")
    elif fmt == "mm":
        with open(path, "wb") as f:
            mmwrite(f, M)
    else:
        with open(path, "wb") as f:
            np.save(f, M)
    meta = {
        "data_type": "matrix",
        "value_type": "double",
        "rows": int(M.shape[0]),
        "cols": int(M.shape[1]),
        "nnz": int(np.count_nonzero(M)),
        "format": fmt
    }
    mtd_path(path).write_text(json.dumps(meta, indent=4) + "\n", encoding="utf-8")
