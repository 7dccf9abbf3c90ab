"""Statistical primitives: p-value combination, adjustment and selection."""

from qrscreen.stats.adjust import adjust_pvalues, bh_fdr, estimate_pi0, qvalue
from qrscreen.stats.combination import cauchy_combination, cauchy_combination_rows
from qrscreen.stats.selection import (
    select_threshold,
    select_top_count,
    select_top_percent,
    top_percent_size,
)

__all__ = [
    "adjust_pvalues",
    "bh_fdr",
    "qvalue",
    "estimate_pi0",
    "cauchy_combination",
    "cauchy_combination_rows",
    "select_threshold",
    "select_top_count",
    "select_top_percent",
    "top_percent_size",
]
