"""Cauchy combination (ACAT) of possibly correlated p-values."""

from __future__ import annotations

import numpy as np
from scipy.stats import cauchy

SMALL_P = 1e-16


def _cauchy_terms(p: np.ndarray) -> np.ndarray:
    """tan((0.5 - p) * pi), with the 1 / (p * pi) approximation for tiny p.

    p == 1 maps to about -1.6e16, which pulls the combined p-value of its row
    to 1 regardless of the other components. Exact ones arise whenever Sn is 0,
    e.g. for discrete genotype codes; they are left as is rather than clipped.
    """
    small = p < SMALL_P
    safe = np.where(small, 0.5, p)
    out = np.tan((0.5 - safe) * np.pi)
    return np.where(small, 1.0 / (np.where(small, p, 1.0) * np.pi), out)


def cauchy_combination_rows(pvals: np.ndarray, weights: np.ndarray | None = None) -> np.ndarray:
    """Row-wise ACAT over an (n_tests, n_components) p-value matrix.

    Rows containing NaN combine to NaN. A row with an exact zero combines to 0.
    """
    mat = np.atleast_2d(np.asarray(pvals, dtype=float))
    n_comp = mat.shape[1]
    if n_comp == 0:
        raise ValueError("At least one p-value per row is required.")
    finite = np.isfinite(mat)
    if np.any((mat[finite] < 0.0) | (mat[finite] > 1.0)):
        raise ValueError("p-values must be in [0,1] or NaN.")
    if weights is None:
        w = np.full(n_comp, 1.0 / n_comp)
    else:
        w = np.asarray(weights, dtype=float).ravel()
        if w.size != n_comp or np.any(w < 0.0) or not np.isfinite(w).all() or w.sum() <= 0.0:
            raise ValueError("weights must be non-negative, finite and match the number of p-values.")
        w = w / w.sum()

    out = np.full(mat.shape[0], np.nan)
    rows = finite.all(axis=1)
    zero = rows & np.any(mat == 0.0, axis=1)
    ok = rows & ~zero
    if np.any(ok):
        stat = _cauchy_terms(mat[ok]) @ w
        big = stat > 1e15
        combined = np.where(big, 1.0 / (np.where(big, stat, 1.0) * np.pi), cauchy.sf(stat))
        out[ok] = np.clip(combined, 0.0, 1.0)
    out[zero] = 0.0
    return out


def cauchy_combination(pvals: np.ndarray, weights: np.ndarray | None = None) -> float:
    arr = np.asarray(pvals, dtype=float).ravel()
    if arr.size == 0:
        raise ValueError("pvals must be non-empty.")
    return float(cauchy_combination_rows(arr.reshape(1, -1), weights)[0])
