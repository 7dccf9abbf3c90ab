"""Small pure helpers for core computations."""

from __future__ import annotations

import numpy as np

from qrscreen.errors import FatalInputError


def finite_vector(values, name: str = "Y") -> np.ndarray:
    """Float vector from 1-D or single-column input; empty or non-finite input is fatal."""
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 2 and 1 in arr.shape:
        arr = arr.ravel()
    if arr.ndim != 1 or arr.size == 0:
        raise FatalInputError(f"{name} must be a non-empty vector, got shape {arr.shape}.")
    n_bad = int((~np.isfinite(arr)).sum())
    if n_bad:
        raise FatalInputError(f"{name} contains NaN/inf ({n_bad} values).")
    return arr


def validate_taus(tau_list) -> tuple[float, ...]:
    if tau_list is None:
        raise FatalInputError("tau_list must contain at least one quantile level.")
    taus = tuple(float(t) for t in np.atleast_1d(np.asarray(tau_list, dtype=float)))
    if len(taus) == 0:
        raise FatalInputError("tau_list must contain at least one quantile level.")
    bad = [t for t in taus if not (0.0 < t < 1.0)]
    if bad:
        raise FatalInputError(f"Quantile levels must lie strictly in (0, 1); got {bad}.")
    return taus


def format_tau(tau: float) -> str:
    return f"{float(tau):g}"
