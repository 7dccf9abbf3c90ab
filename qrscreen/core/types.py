"""Typed configuration and result containers for quantile screening."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from qrscreen.stats.selection import (
    select_threshold,
    select_top_count,
    select_top_percent,
)

DEFAULT_TAUS: tuple[float, ...] = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)


@dataclass(frozen=True)
class ScreenConfig:
    """Parameters of one `screen` invocation."""

    tau_list: tuple[float, ...] = DEFAULT_TAUS
    method: str = "fdr"
    threshold: float = 0.05
    top_count: int = 10
    top_percent: float = 1.0
    n_jobs: int = 1
    block_size: int = 256
    degenerate_tol: float = 1e-10


@dataclass(frozen=True)
class QuantileFit:
    """Output of one quantile regression fit.

    - `dual`: regression rank scores a_hat in [0, 1], one per observation.
    - `n_interpolated`: observations with (numerically) zero residual.
    """

    tau: float
    coef: np.ndarray
    dual: np.ndarray
    objective: float
    n_interpolated: int
    non_unique: bool
    solver: str


@dataclass(frozen=True)
class RankScores:
    """Rank-score vectors `dual - (1 - tau)`, one column per quantile level."""

    taus: tuple[float, ...]
    matrix: np.ndarray
    diagnostics: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.matrix.ndim != 2 or self.matrix.shape[1] != len(self.taus):
            raise ValueError("RankScores matrix must have one column per tau.")

    def __len__(self) -> int:
        return len(self.taus)

    def __getitem__(self, tau: float) -> np.ndarray:
        return self.matrix[:, self.index(tau)]

    def index(self, tau: float) -> int:
        for i, t in enumerate(self.taus):
            if np.isclose(t, float(tau), rtol=0.0, atol=1e-12):
                return i
        raise KeyError(f"tau={tau} not in rank scores {self.taus}.")


@dataclass(frozen=True)
class ScreenResult:
    """Per-predictor screening output.

    Rows of every per-predictor array follow the input column order of X.
    Selection sets are derived from `adjusted` on access.
    """

    predictors: tuple[str, ...]
    taus: tuple[float, ...]
    scores: np.ndarray
    pvalues: np.ndarray
    composite: np.ndarray
    combined: np.ndarray
    adjusted: np.ndarray
    adjusted_per_tau: np.ndarray
    degenerate: np.ndarray
    composite_failed: np.ndarray
    method: str
    threshold: float
    top_count: int
    top_percent: float
    diagnostics: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def n_predictors(self) -> int:
        return len(self.predictors)

    def tau_index(self, tau: float) -> int:
        for i, t in enumerate(self.taus):
            if np.isclose(t, float(tau), rtol=0.0, atol=1e-12):
                return i
        raise KeyError(f"tau={tau} not screened; available: {self.taus}.")

    def pvalues_at(self, tau: float) -> np.ndarray:
        return self.pvalues[:, self.tau_index(tau)]

    @property
    def threshold_set(self) -> np.ndarray:
        return select_threshold(self.adjusted, self.threshold)

    @property
    def top_count_set(self) -> np.ndarray:
        return select_top_count(self.adjusted, self.top_count)

    @property
    def top_percent_set(self) -> np.ndarray:
        return select_top_percent(self.adjusted, self.top_percent)

    def names(self, indices: np.ndarray) -> list[str]:
        return [self.predictors[int(i)] for i in np.asarray(indices, dtype=int)]
