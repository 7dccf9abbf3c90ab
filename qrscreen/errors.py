"""Exception and warning taxonomy for quantile screening."""

from __future__ import annotations


class FatalInputError(ValueError):
    """Invalid input or configuration; aborts the whole screen."""


class ScreenCancelled(RuntimeError):
    """Raised when a running screen observes its cancel event."""


class DegenerateStatisticWarning(RuntimeWarning):
    """Zero or near-zero variance in a per-quantile score statistic."""


class NonPositiveDefiniteWarning(RuntimeWarning):
    """Cholesky factorization of the scaled covariance failed."""


class SolverNonUniqueWarning(RuntimeWarning):
    """Quantile regression solution may be non-unique."""
