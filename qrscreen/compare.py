"""Covariate adjustment by pre-residualization vs. direct inclusion.

Two ways of adjusting a quantile regression of Y on a predictor x for
covariates Z:

- residualized: regress x and Y on [1 | Z] by least squares, then fit the
  quantile regression of the Y residuals on the x residuals;
- direct: fit the quantile regression of Y on [1 | x | Z].

The two are not interchangeable for quantile regression, so both paths are
kept as separate operations and compared side by side.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import ConvergenceWarning, IterationLimitWarning

from qrscreen.core.design import (
    as_design,
    as_response,
    check_rows,
    intercept_design,
    residualize,
)
from qrscreen.core.types import DEFAULT_TAUS, ScreenResult
from qrscreen.core.utils import format_tau, validate_taus
from qrscreen.screening import screen


@dataclass(frozen=True)
class CoefEstimate:
    path: str
    tau: float
    coef: float
    se: float
    pvalue: float


def _inputs(X: Any, Y: Any, Z: Any | None) -> tuple[pd.DataFrame, np.ndarray, pd.DataFrame | None, np.ndarray]:
    Xf = as_design(X, prefix="x", name="X")
    y = as_response(Y)
    Zf = None if Z is None else as_design(Z, prefix="z", name="Z")
    n_obs = check_rows(Xf.shape[0], y.size, None if Zf is None else Zf.shape[0])
    zz = intercept_design(Zf, n_obs).to_numpy()
    return Xf, y, Zf, zz


def _quantreg(
    y: np.ndarray,
    exog: np.ndarray,
    tau: float,
    path: str,
    logger: logging.Logger,
    max_iter: int = 1000,
) -> CoefEstimate:
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", IterationLimitWarning)
        warnings.simplefilter("always", ConvergenceWarning)
        res = sm.QuantReg(y, exog).fit(q=float(tau), max_iter=int(max_iter))
    for w in caught:
        if issubclass(w.category, (IterationLimitWarning, ConvergenceWarning)):
            logger.warning("QuantReg %s tau=%s: %s", path, format_tau(tau), w.message)
        else:
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
    params = np.asarray(res.params, dtype=float)
    bse = np.asarray(res.bse, dtype=float)
    pvals = np.asarray(res.pvalues, dtype=float)
    return CoefEstimate(
        path=path,
        tau=float(tau),
        coef=float(params[1]),
        se=float(bse[1]),
        pvalue=float(pvals[1]),
    )


def residualize_xy(X: Any, Y: Any, Z: Any | None) -> tuple[pd.DataFrame, np.ndarray]:
    """OLS residuals of every X column and of Y on [1 | Z]."""
    Xf, y, _, zz = _inputs(X, Y, Z)
    Xr = pd.DataFrame(residualize(Xf.to_numpy(), zz), columns=Xf.columns, index=Xf.index)
    return Xr, residualize(y, zz)


def fit_direct(
    x: Any,
    Y: Any,
    Z: Any | None,
    tau: float,
    *,
    logger: logging.Logger | None = None,
) -> CoefEstimate:
    """Coefficient of x in the quantile regression of Y on [1 | x | Z]."""
    log = logger or logging.getLogger("qrscreen")
    Xf, y, _, zz = _inputs(x, Y, Z)
    if Xf.shape[1] != 1:
        raise ValueError("fit_direct expects a single predictor column.")
    exog = np.column_stack([zz[:, :1], Xf.to_numpy(), zz[:, 1:]])
    return _quantreg(y, exog, tau, "direct", log)


def fit_residualized(
    x: Any,
    Y: Any,
    Z: Any | None,
    tau: float,
    *,
    logger: logging.Logger | None = None,
) -> CoefEstimate:
    """Coefficient of x* in the quantile regression of Y* on [1 | x*].

    x* and Y* are least-squares residuals on [1 | Z].
    """
    log = logger or logging.getLogger("qrscreen")
    Xf, y, _, zz = _inputs(x, Y, Z)
    if Xf.shape[1] != 1:
        raise ValueError("fit_residualized expects a single predictor column.")
    rx = residualize(Xf.to_numpy()[:, 0], zz)
    ry = residualize(y, zz)
    exog = np.column_stack([np.ones(ry.size), rx])
    return _quantreg(ry, exog, tau, "residualized", log)


def compare_adjustment(
    X: Any,
    Y: Any,
    Z: Any | None,
    tau_list: Sequence[float] = DEFAULT_TAUS,
    *,
    logger: logging.Logger | None = None,
) -> pd.DataFrame:
    """Side-by-side estimates of both adjustment paths, one row per predictor and tau."""
    log = logger or logging.getLogger("qrscreen")
    taus = validate_taus(tau_list)
    Xf, y, Zf, _ = _inputs(X, Y, Z)
    rows: list[dict[str, Any]] = []
    for col in Xf.columns:
        x = Xf[[col]]
        for tau in taus:
            direct = fit_direct(x, y, Zf, tau, logger=log)
            resid = fit_residualized(x, y, Zf, tau, logger=log)
            rows.append(
                {
                    "predictor": col,
                    "tau": tau,
                    "coef_direct": direct.coef,
                    "se_direct": direct.se,
                    "p_direct": direct.pvalue,
                    "coef_residualized": resid.coef,
                    "se_residualized": resid.se,
                    "p_residualized": resid.pvalue,
                }
            )
    out = pd.DataFrame(rows)
    if not out.empty:
        out["coef_diff"] = out["coef_residualized"] - out["coef_direct"]
        with np.errstate(divide="ignore", invalid="ignore"):
            out["se_ratio"] = out["se_residualized"] / out["se_direct"]
    log.info("Adjustment comparison: predictors=%d taus=%d", Xf.shape[1], len(taus))
    return out


def screen_residualized(
    X: Any,
    Y: Any,
    Z: Any | None,
    degenerate_tol: float = 1e-10,
    **kwargs: Any,
) -> ScreenResult:
    """Screen pre-residualized X and Y with no covariates in the QR design.

    Columns whose residual sum of squares vanishes relative to the raw one are
    zeroed so the screen flags them as degenerate.
    """
    Xf, y, _, zz = _inputs(X, Y, Z)
    raw = Xf.to_numpy()
    Xr = residualize(raw, zz)
    raw_ss = np.einsum("ij,ij->j", raw, raw)
    res_ss = np.einsum("ij,ij->j", Xr, Xr)
    Xr[:, ~(res_ss > float(degenerate_tol) * raw_ss)] = 0.0
    frame = pd.DataFrame(Xr, columns=Xf.columns)
    return screen(frame, residualize(y, zz), None, degenerate_tol=degenerate_tol, **kwargs)
