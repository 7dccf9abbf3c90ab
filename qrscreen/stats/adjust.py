"""Multiple-testing adjustment: Benjamini-Hochberg FDR and Storey q-values."""

from __future__ import annotations

import numpy as np
from scipy.interpolate import make_smoothing_spline

from qrscreen.errors import FatalInputError

ADJUST_METHODS: tuple[str, ...] = ("fdr", "qvalue")
DEFAULT_LAMBDAS = np.round(np.arange(0.05, 0.951, 0.05), 2)


def _finite_pvalues(pvals: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    flat = np.asarray(pvals, dtype=float).ravel()
    finite = np.isfinite(flat)
    if np.any((flat[finite] < 0.0) | (flat[finite] > 1.0)):
        raise ValueError("p-values must be in [0,1] or NaN.")
    return flat, finite


def _step_up(p: np.ndarray) -> np.ndarray:
    m = int(p.size)
    order = np.argsort(p, kind="mergesort")
    ranked = p[order]
    ranks = np.arange(1, m + 1, dtype=float)
    adj = ranked * (float(m) / ranks)
    adj = np.minimum.accumulate(adj[::-1])[::-1]
    out = np.empty_like(adj)
    out[order] = adj
    return out


def bh_fdr(pvals: np.ndarray) -> np.ndarray:
    """Benjamini-Hochberg adjusted p-values; NaN entries stay NaN."""
    arr = np.asarray(pvals, dtype=float)
    flat, finite = _finite_pvalues(arr)
    q = np.full_like(flat, np.nan)
    if np.any(finite):
        q[finite] = np.clip(_step_up(flat[finite]), 0.0, 1.0)
    return q.reshape(arr.shape)


def estimate_pi0(pvals: np.ndarray, lambdas: np.ndarray | None = None) -> float:
    """Storey's proportion of true nulls, smoothed over a lambda grid.

    pi0(lambda) = #{p > lambda} / (m * (1 - lambda)) is smoothed with a cubic
    smoothing spline and read off at the largest lambda. Falls back to 1.0
    when the grid is too short or the estimate is not in (0, 1].
    """
    p, finite = _finite_pvalues(pvals)
    p = p[finite]
    m = int(p.size)
    if m == 0:
        return 1.0
    lam = np.unique(np.asarray(DEFAULT_LAMBDAS if lambdas is None else lambdas, dtype=float))
    if np.any((lam < 0.0) | (lam >= 1.0)):
        raise ValueError("lambdas must be in [0, 1).")
    lam = lam[lam < float(np.max(p))]
    if lam.size == 0:
        return 1.0
    pi0_lam = np.array([np.sum(p > l) / (m * (1.0 - l)) for l in lam], dtype=float)
    if lam.size < 5:
        pi0 = float(pi0_lam[-1])
    else:
        spline = make_smoothing_spline(lam, pi0_lam)
        pi0 = float(spline(lam[-1]))
    if not np.isfinite(pi0) or pi0 <= 0.0:
        return 1.0
    return float(min(pi0, 1.0))


def qvalue(
    pvals: np.ndarray,
    lambdas: np.ndarray | None = None,
    pi0: float | None = None,
) -> np.ndarray:
    """Storey q-values: pi0-scaled step-up adjustment; NaN entries stay NaN."""
    arr = np.asarray(pvals, dtype=float)
    flat, finite = _finite_pvalues(arr)
    q = np.full_like(flat, np.nan)
    if not np.any(finite):
        return q.reshape(arr.shape)
    if pi0 is None:
        pi0_hat = estimate_pi0(flat[finite], lambdas)
    else:
        pi0_hat = float(pi0)
        if not (0.0 < pi0_hat <= 1.0):
            raise ValueError("pi0 must be in (0, 1].")
    q[finite] = np.clip(pi0_hat * _step_up(flat[finite]), 0.0, 1.0)
    return q.reshape(arr.shape)


def validate_method(method: str) -> str:
    name = str(method).strip().lower()
    if name not in ADJUST_METHODS:
        raise FatalInputError(
            f"Unknown adjustment method '{method}'. Use one of: {', '.join(ADJUST_METHODS)}."
        )
    return name


def adjust_pvalues(pvals: np.ndarray, method: str = "fdr") -> np.ndarray:
    name = validate_method(method)
    if name == "fdr":
        return bh_fdr(pvals)
    return qvalue(pvals)
