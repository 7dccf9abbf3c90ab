"""Candidate selection over adjusted p-values."""

from __future__ import annotations

import math

import numpy as np


def _ranking(adjusted: np.ndarray) -> np.ndarray:
    arr = np.asarray(adjusted, dtype=float).ravel()
    # NaN sorts last; mergesort keeps input order among ties.
    key = np.where(np.isfinite(arr), arr, np.inf)
    return np.argsort(key, kind="mergesort")


def select_threshold(adjusted: np.ndarray, threshold: float) -> np.ndarray:
    arr = np.asarray(adjusted, dtype=float).ravel()
    with np.errstate(invalid="ignore"):
        hit = arr < float(threshold)
    return np.flatnonzero(hit)


def select_top_count(adjusted: np.ndarray, top_count: int) -> np.ndarray:
    k = int(top_count)
    if k < 0:
        raise ValueError("top_count must be non-negative.")
    order = _ranking(adjusted)
    return order[: min(k, order.size)]


def top_percent_size(n_predictors: int, top_percent: float) -> int:
    """Number of predictors in the top-percent set: max(1, round(n * pct / 100))."""
    n = int(n_predictors)
    if n <= 0:
        return 0
    pct = float(top_percent)
    if not (0.0 < pct <= 100.0):
        raise ValueError("top_percent must be in (0, 100].")
    size = int(math.floor(n * pct / 100.0 + 0.5))
    return min(n, max(1, size))


def select_top_percent(adjusted: np.ndarray, top_percent: float) -> np.ndarray:
    order = _ranking(adjusted)
    return order[: top_percent_size(order.size, top_percent)]
