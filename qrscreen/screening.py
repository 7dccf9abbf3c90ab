"""Quantile rank-score screening of many candidate predictors."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from joblib import effective_n_jobs

from qrscreen.core.design import (
    as_design,
    as_response,
    check_rows,
    intercept_design,
    residualize,
)
from qrscreen.core.score import BlockScores, score_block, tau_covariance
from qrscreen.core.solver import rank_scores
from qrscreen.core.types import DEFAULT_TAUS, ScreenConfig, ScreenResult
from qrscreen.core.utils import format_tau, validate_taus
from qrscreen.errors import (
    DegenerateStatisticWarning,
    FatalInputError,
    NonPositiveDefiniteWarning,
    ScreenCancelled,
)
from qrscreen.parallel import parallel_map
from qrscreen.stats.adjust import adjust_pvalues, validate_method
from qrscreen.stats.combination import cauchy_combination_rows


@dataclass(frozen=True)
class _BlockTask:
    start: int
    x: np.ndarray
    zz: np.ndarray | None
    ranks: np.ndarray
    vn: np.ndarray
    tol: float


def _run_block(task: _BlockTask) -> BlockScores:
    raw_ss = np.einsum("ij,ij->j", task.x, task.x)
    if task.zz is None:
        # Sn uses x as given; degeneracy is judged against the intercept.
        centred = task.x - task.x.mean(axis=0)
        resid_ss = np.einsum("ij,ij->j", centred, centred)
        return score_block(task.x, raw_ss, task.ranks, task.vn, task.tol, resid_ss=resid_ss)
    xstar = residualize(task.x, task.zz)
    return score_block(xstar, raw_ss, task.ranks, task.vn, task.tol)


def _validate_selection(threshold: float, top_count: int, top_percent: float) -> None:
    if not (0.0 < float(threshold) <= 1.0):
        raise FatalInputError(f"threshold must be in (0, 1], got {threshold}.")
    if int(top_count) < 0:
        raise FatalInputError(f"top_count must be non-negative, got {top_count}.")
    if not (0.0 < float(top_percent) <= 100.0):
        raise FatalInputError(f"top_percent must be in (0, 100], got {top_percent}.")


def _check_cancel(cancel_event: threading.Event | None, done: int, total: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ScreenCancelled(f"Screen cancelled after {done}/{total} predictors.")


def screen(
    X: Any,
    Y: Any,
    Z: Any | None = None,
    tau_list: Sequence[float] = DEFAULT_TAUS,
    method: str = "fdr",
    threshold: float = 0.05,
    top_count: int = 10,
    top_percent: float = 1.0,
    *,
    n_jobs: int = 1,
    block_size: int = 256,
    degenerate_tol: float = 1e-10,
    backend: str = "threading",
    cancel_event: threading.Event | None = None,
    logger: logging.Logger | None = None,
) -> ScreenResult:
    """Screen every column of X for association with quantiles of Y.

    Covariates Z, when given, enter the quantile regression design [1 | Z] and
    each predictor column is residualized on the same design before scoring.
    Inputs are validated before any per-predictor work; `FatalInputError` is
    the only exception raised for bad input. Degenerate predictors and failed
    composite tests are flagged in the result, never dropped.
    """
    log = logger or logging.getLogger("qrscreen")
    method_name = validate_method(method)
    taus = validate_taus(tau_list)
    _validate_selection(threshold, top_count, top_percent)
    if int(block_size) <= 0:
        raise FatalInputError("block_size must be positive.")
    if int(n_jobs) == 0:
        raise FatalInputError("n_jobs must be non-zero.")

    Xf = as_design(X, prefix="x", name="X")
    y = as_response(Y)
    Zf = None if Z is None else as_design(Z, prefix="z", name="Z")
    n_obs = check_rows(Xf.shape[0], y.size, None if Zf is None else Zf.shape[0])
    zz = intercept_design(Zf, n_obs).to_numpy()
    if n_obs <= zz.shape[1]:
        raise FatalInputError(
            f"Need more observations ({n_obs}) than design columns ({zz.shape[1]})."
        )
    if len(set(taus)) != len(taus):
        log.warning(
            "Duplicated quantile levels %s; composite tests will be undefined.",
            [format_tau(t) for t in taus],
        )

    log.info(
        "Rank scores: n_obs=%d taus=%s covariates=%d",
        n_obs,
        ",".join(format_tau(t) for t in taus),
        zz.shape[1] - 1,
    )
    ranks = rank_scores(zz, y, taus, logger=log)
    vn = tau_covariance(taus)

    Xmat = Xf.to_numpy()
    n_pred = Xmat.shape[1]
    bs = int(block_size)
    tasks = [
        _BlockTask(
            start=s,
            x=Xmat[:, s : s + bs],
            zz=None if Zf is None else zz,
            ranks=ranks.matrix,
            vn=vn,
            tol=float(degenerate_tol),
        )
        for s in range(0, n_pred, bs)
    ]
    wave = max(1, int(effective_n_jobs(n_jobs)))
    log.info("Scoring %d predictors in %d blocks (n_jobs=%s)", n_pred, len(tasks), n_jobs)

    blocks: list[BlockScores] = []
    for w in range(0, len(tasks), wave):
        _check_cancel(cancel_event, min(n_pred, w * bs), n_pred)
        blocks.extend(
            parallel_map(_run_block, tasks[w : w + wave], n_jobs=n_jobs, backend=backend)
        )

    scores = np.vstack([b.scores for b in blocks])
    pvalues = np.vstack([b.pvalues for b in blocks])
    composite = np.concatenate([b.composite for b in blocks])
    degenerate = np.concatenate([b.degenerate for b in blocks])
    failed = np.concatenate([b.composite_failed for b in blocks])
    xtx = np.concatenate([b.xtx for b in blocks])

    names = tuple(str(c) for c in Xf.columns)
    notes = [f"SolverNonUniqueWarning: {msg}" for msg in ranks.diagnostics]
    for i in np.flatnonzero(degenerate):
        log.warning(
            "Degenerate statistic: predictor=%s xtx=%.3g; p-values set to 1", names[i], xtx[i]
        )
        notes.append(f"{DegenerateStatisticWarning.__name__}: predictor={names[i]}")
    for i in np.flatnonzero(failed & ~degenerate):
        log.warning(
            "Composite skipped: predictor=%s reason=non-positive-definite covariance", names[i]
        )
        notes.append(f"{NonPositiveDefiniteWarning.__name__}: predictor={names[i]}")

    combined = cauchy_combination_rows(pvalues)
    adjusted = adjust_pvalues(combined, method_name)
    adjusted_per_tau = np.column_stack(
        [adjust_pvalues(pvalues[:, j], method_name) for j in range(len(taus))]
    )

    result = ScreenResult(
        predictors=names,
        taus=taus,
        scores=scores,
        pvalues=pvalues,
        composite=composite,
        combined=combined,
        adjusted=adjusted,
        adjusted_per_tau=adjusted_per_tau,
        degenerate=degenerate,
        composite_failed=failed,
        method=method_name,
        threshold=float(threshold),
        top_count=int(top_count),
        top_percent=float(top_percent),
        diagnostics=tuple(notes),
        metadata={
            "n_obs": n_obs,
            "n_covariates": int(zz.shape[1] - 1),
            "residualized": Zf is not None,
        },
    )
    log.info(
        "Screen complete: predictors=%d degenerate=%d significant=%d method=%s",
        n_pred,
        int(degenerate.sum()),
        int(result.threshold_set.size),
        method_name,
    )
    return result


def screen_with_config(
    X: Any,
    Y: Any,
    Z: Any | None,
    config: ScreenConfig,
    **kwargs: Any,
) -> ScreenResult:
    return screen(
        X,
        Y,
        Z,
        tau_list=config.tau_list,
        method=config.method,
        threshold=config.threshold,
        top_count=config.top_count,
        top_percent=config.top_percent,
        n_jobs=config.n_jobs,
        block_size=config.block_size,
        degenerate_tol=config.degenerate_tol,
        **kwargs,
    )
