"""qrscreen public API."""

from qrscreen._version import __version__
from qrscreen.core.types import ScreenConfig, ScreenResult
from qrscreen.errors import (
    DegenerateStatisticWarning,
    FatalInputError,
    NonPositiveDefiniteWarning,
    ScreenCancelled,
    SolverNonUniqueWarning,
)
from qrscreen.screening import screen, screen_with_config


def compare_adjustment(*args, **kwargs):
    """Lazy wrapper to avoid importing statsmodels at import time."""
    from qrscreen.compare import compare_adjustment as _compare_adjustment

    return _compare_adjustment(*args, **kwargs)


__all__ = [
    "__version__",
    "screen",
    "screen_with_config",
    "compare_adjustment",
    "ScreenConfig",
    "ScreenResult",
    "FatalInputError",
    "ScreenCancelled",
    "DegenerateStatisticWarning",
    "NonPositiveDefiniteWarning",
    "SolverNonUniqueWarning",
]
