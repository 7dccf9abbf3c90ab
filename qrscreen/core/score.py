"""Quantile rank-score statistics and the cross-quantile composite test."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy.linalg import solve_triangular
from scipy.stats import chi2

from qrscreen.core.utils import validate_taus

PIVOT_RTOL = 1e-7


def tau_covariance(taus: Sequence[float]) -> np.ndarray:
    """VN[i, j] = min(tau_i, tau_j) - tau_i * tau_j."""
    t = np.asarray(validate_taus(taus), dtype=float)
    return np.minimum.outer(t, t) - np.outer(t, t)


@dataclass(frozen=True)
class BlockScores:
    """Scores for a block of predictor columns (rows follow the block's columns)."""

    scores: np.ndarray
    xtx: np.ndarray
    pvalues: np.ndarray
    composite: np.ndarray
    degenerate: np.ndarray
    composite_failed: np.ndarray


def score_statistics(Xstar: np.ndarray, ranks: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Sn = xstar' rank(tau) for every column and tau, plus xstar' xstar."""
    Xs = np.asarray(Xstar, dtype=float)
    if Xs.ndim == 1:
        Xs = Xs.reshape(-1, 1)
    R = np.asarray(ranks, dtype=float)
    if Xs.shape[0] != R.shape[0]:
        raise ValueError("Xstar and rank scores must have the same number of rows.")
    return Xs.T @ R, np.einsum("ij,ij->j", Xs, Xs)


def degenerate_mask(xtx: np.ndarray, raw_ss: np.ndarray, tol: float = 1e-10) -> np.ndarray:
    """Columns whose residual sum of squares vanishes relative to the raw one.

    An all-zero column (raw_ss == 0) is degenerate.
    """
    xtx = np.asarray(xtx, dtype=float)
    ref = np.asarray(raw_ss, dtype=float)
    return ~(xtx > float(tol) * ref)


def quantile_pvalues(
    scores: np.ndarray, xtx: np.ndarray, vn: np.ndarray, degenerate: np.ndarray
) -> np.ndarray:
    """Per-quantile p = P(chi2_1 > Sn^2 / VN2[i,i]); degenerate rows are fixed at 1."""
    var = np.outer(np.asarray(xtx, dtype=float), np.diag(vn))
    out = np.ones_like(var)
    ok = ~np.asarray(degenerate, dtype=bool)
    if np.any(ok):
        stat = scores[ok] ** 2 / var[ok]
        out[ok] = chi2.sf(stat, df=1)
    return out


def cholesky_whiten(sn: np.ndarray, vn2: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return the lower Cholesky factor L of vn2 and SN2 = L^{-1} SN.

    Raises `numpy.linalg.LinAlgError` when vn2 is not positive definite,
    including factors whose smallest pivot is lost in rounding.
    """
    L = np.linalg.cholesky(np.asarray(vn2, dtype=float))
    d = np.diag(L)
    if d.min() <= PIVOT_RTOL * d.max():
        raise np.linalg.LinAlgError("Matrix is numerically singular.")
    sn2 = solve_triangular(L, np.asarray(sn, dtype=float).ravel(), lower=True)
    return L, sn2


def composite_pvalue(sn: np.ndarray, vn: np.ndarray, xtx: float) -> tuple[float, bool]:
    """Chi-square(L) test of the whitened score vector.

    Returns (p, failed); a failed Cholesky gives (NaN, True).
    """
    vn2 = np.asarray(vn, dtype=float) * float(xtx)
    try:
        _, sn2 = cholesky_whiten(sn, vn2)
    except np.linalg.LinAlgError:
        return float("nan"), True
    stat = float(sn2 @ sn2)
    return float(chi2.sf(stat, df=vn2.shape[0])), False


def score_block(
    Xstar: np.ndarray,
    raw_ss: np.ndarray,
    ranks: np.ndarray,
    vn: np.ndarray,
    tol: float = 1e-10,
    resid_ss: np.ndarray | None = None,
) -> BlockScores:
    """Score a block of predictor columns.

    `resid_ss` is the sum of squares left after projecting out the QR design;
    it defaults to xstar' xstar. Pass it when Xstar is not itself residualized
    (intercept-only design) so constant columns are still caught.
    """
    scores, xtx = score_statistics(Xstar, ranks)
    kept_ss = xtx if resid_ss is None else np.asarray(resid_ss, dtype=float)
    degenerate = degenerate_mask(kept_ss, raw_ss, tol)
    pvals = quantile_pvalues(scores, xtx, vn, degenerate)
    composite = np.full(xtx.size, np.nan)
    failed = np.zeros(xtx.size, dtype=bool)
    for i in range(xtx.size):
        if degenerate[i]:
            failed[i] = True
            continue
        composite[i], failed[i] = composite_pvalue(scores[i], vn, xtx[i])
    return BlockScores(
        scores=scores,
        xtx=xtx,
        pvalues=pvals,
        composite=composite,
        degenerate=degenerate,
        composite_failed=failed,
    )
