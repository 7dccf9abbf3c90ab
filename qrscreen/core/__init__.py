"""Core compute subpackage."""

from qrscreen.core.design import as_design, intercept_design, residualize
from qrscreen.core.score import (
    cholesky_whiten,
    composite_pvalue,
    score_block,
    tau_covariance,
)
from qrscreen.core.solver import fit_quantile, rank_scores
from qrscreen.core.types import QuantileFit, RankScores, ScreenConfig, ScreenResult

__all__ = [
    "ScreenConfig",
    "ScreenResult",
    "QuantileFit",
    "RankScores",
    "as_design",
    "intercept_design",
    "residualize",
    "fit_quantile",
    "rank_scores",
    "tau_covariance",
    "cholesky_whiten",
    "composite_pvalue",
    "score_block",
]
