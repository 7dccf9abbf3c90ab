"""Exact quantile regression via linear programming (HiGHS).

The Koenker-Bassett problem

    minimize   tau * sum(u+) + (1 - tau) * sum(u-)
    subject to D b + u+ - u- = y,  u+, u- >= 0

is solved with `scipy.optimize.linprog`. The equality-constraint marginals are
the dual solution lambda in [tau - 1, tau] with D' lambda = 0; the regression
rank scores are a_hat = lambda + (1 - tau) in [0, 1].
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Sequence

import numpy as np
from scipy import sparse
from scipy.optimize import linprog

from qrscreen.core.types import QuantileFit, RankScores
from qrscreen.core.utils import format_tau, validate_taus
from qrscreen.errors import SolverNonUniqueWarning

_OPTIONS_TIGHT: dict[str, Any] = {
    "presolve": True,
    "dual_feasibility_tolerance": 1e-9,
    "primal_feasibility_tolerance": 1e-9,
}
_OPTIONS_RELAXED: dict[str, Any] = {
    "presolve": False,
    "dual_feasibility_tolerance": 1e-7,
    "primal_feasibility_tolerance": 1e-7,
}
_ATTEMPTS: tuple[tuple[str, dict[str, Any], str], ...] = (
    ("highs-ds", _OPTIONS_TIGHT, "highs-ds"),
    ("highs-ipm", _OPTIONS_TIGHT, "highs-ipm"),
    ("highs-ds", _OPTIONS_RELAXED, "highs-ds-relaxed"),
    ("highs-ipm", _OPTIONS_RELAXED, "highs-ipm-relaxed"),
)


def _lp_problem(D: np.ndarray, y: np.ndarray, tau: float):
    n, k = D.shape
    c = np.concatenate([np.zeros(k), np.full(n, tau), np.full(n, 1.0 - tau)])
    A_eq = sparse.hstack(
        [sparse.csr_matrix(D), sparse.eye(n), -sparse.eye(n)], format="csr"
    )
    bounds = [(None, None)] * k + [(0.0, None)] * (2 * n)
    return c, A_eq, y, bounds


def fit_quantile(design: np.ndarray, y: np.ndarray, tau: float) -> QuantileFit:
    """Fit the tau-th regression quantile of y on `design` (no intercept added).

    Emits `SolverNonUniqueWarning` when the solution may be non-unique: more
    interpolated observations than the design rank, or an interpolated
    observation whose rank score sits on the boundary {0, 1}.
    """
    t = float(tau)
    if not (0.0 < t < 1.0):
        raise ValueError("tau must be in (0,1).")
    D = np.asarray(design, dtype=float)
    if D.ndim == 1:
        D = D.reshape(-1, 1)
    yv = np.asarray(y, dtype=float).ravel()
    n, k = D.shape
    if yv.size != n:
        raise ValueError("design and y must have the same number of rows.")

    c, A_eq, b_eq, bounds = _lp_problem(D, yv, t)
    res = None
    used = ""
    for method, options, label in _ATTEMPTS:
        res = linprog(c, A_eq=A_eq, b_eq=b_eq, bounds=bounds, method=method, options=options)
        marginals = getattr(getattr(res, "eqlin", None), "marginals", None)
        if res.success and marginals is not None:
            used = label
            break
    else:
        msg = getattr(res, "message", "no result")
        raise RuntimeError(f"LP solver failed for tau={format_tau(t)}: {msg}")

    coef = np.asarray(res.x[:k], dtype=float)
    dual = np.clip(np.asarray(res.eqlin.marginals, dtype=float) + (1.0 - t), 0.0, 1.0)

    scale = max(1.0, float(np.max(np.abs(yv))))
    resid = yv - D @ coef
    interp = np.abs(resid) <= 1e-8 * scale
    n_interp = int(interp.sum())
    rank = int(np.linalg.matrix_rank(D))
    boundary = np.any((dual[interp] <= 1e-9) | (dual[interp] >= 1.0 - 1e-9))
    non_unique = bool(n_interp > rank or boundary)
    if non_unique:
        warnings.warn(
            f"Solution may be non-unique: tau={format_tau(t)} "
            f"interpolated={n_interp} design_rank={rank}",
            SolverNonUniqueWarning,
            stacklevel=2,
        )
    return QuantileFit(
        tau=t,
        coef=coef,
        dual=dual,
        objective=float(res.fun),
        n_interpolated=n_interp,
        non_unique=non_unique,
        solver=used,
    )


def rank_scores(
    design: np.ndarray,
    y: np.ndarray,
    taus: Sequence[float],
    *,
    logger: logging.Logger | None = None,
) -> RankScores:
    """Rank-score vectors `dual - (1 - tau)` for every quantile level.

    Non-unique solution warnings are recorded and logged; the returned dual is
    used as-is.
    """
    log = logger or logging.getLogger("qrscreen")
    tau_tuple = validate_taus(taus)
    D = np.asarray(design, dtype=float)
    yv = np.asarray(y, dtype=float).ravel()
    cols = np.empty((yv.size, len(tau_tuple)), dtype=float)
    notes: list[str] = []
    for j, tau in enumerate(tau_tuple):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", SolverNonUniqueWarning)
            fit = fit_quantile(D, yv, tau)
        for w in caught:
            if issubclass(w.category, SolverNonUniqueWarning):
                log.warning("QR solver: %s", w.message)
                notes.append(str(w.message))
            else:
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
        cols[:, j] = fit.dual - (1.0 - tau)
    return RankScores(taus=tau_tuple, matrix=cols, diagnostics=tuple(notes))
