"""Design matrix coercion and least-squares residualization."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from qrscreen.core.utils import finite_vector
from qrscreen.errors import FatalInputError

INTERCEPT = "(Intercept)"


def as_design(data: Any, prefix: str = "x", name: str = "X") -> pd.DataFrame:
    """Coerce an array or DataFrame into a float DataFrame with named columns.

    1-D input is treated as a single column. Unnamed columns get
    `prefix0, prefix1, ...`.
    """
    if isinstance(data, pd.DataFrame):
        frame = data.copy()
        frame.columns = [str(c) for c in frame.columns]
    elif isinstance(data, pd.Series):
        col = str(data.name) if data.name is not None else f"{prefix}0"
        frame = data.to_frame(name=col)
    else:
        arr = np.asarray(data)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise FatalInputError(f"{name} must be 1-D or 2-D, got shape {arr.shape}.")
        frame = pd.DataFrame(arr, columns=[f"{prefix}{j}" for j in range(arr.shape[1])])
    try:
        frame = frame.astype(float)
    except (TypeError, ValueError) as exc:
        raise FatalInputError(f"{name} must be numeric: {exc}") from exc
    if frame.shape[0] == 0 or frame.shape[1] == 0:
        raise FatalInputError(f"{name} must have at least one row and one column.")
    if not np.isfinite(frame.to_numpy()).all():
        raise FatalInputError(f"{name} contains NaN/inf.")
    return frame


def as_response(data: Any, name: str = "Y") -> np.ndarray:
    if isinstance(data, pd.DataFrame):
        if data.shape[1] != 1:
            raise FatalInputError(f"{name} must be a single column, got {data.shape[1]}.")
        data = data.iloc[:, 0]
    return finite_vector(data, name)


def check_rows(n_x: int, n_y: int, n_z: int | None = None) -> int:
    if n_x != n_y:
        raise FatalInputError(f"Row count mismatch: X has {n_x} rows, Y has {n_y}.")
    if n_z is not None and n_z != n_y:
        raise FatalInputError(f"Row count mismatch: Z has {n_z} rows, Y has {n_y}.")
    return int(n_y)


def intercept_design(Z: pd.DataFrame | None, n_obs: int) -> pd.DataFrame:
    """Build zz = [1 | Z], or the intercept-only design when Z is absent."""
    ones = pd.DataFrame({INTERCEPT: np.ones(int(n_obs), dtype=float)})
    if Z is None:
        return ones
    if Z.shape[0] != int(n_obs):
        raise FatalInputError(f"Row count mismatch: Z has {Z.shape[0]} rows, expected {n_obs}.")
    cov = Z.reset_index(drop=True)
    return pd.concat([ones, cov], axis=1)


def residualize(values: np.ndarray, design: np.ndarray | pd.DataFrame) -> np.ndarray:
    """Exact OLS residuals of `values` (vector or columns) on `design`.

    No intercept is added beyond what `design` already contains. Rank-deficient
    designs use the minimum-norm least-squares solution, so residuals remain
    the projection onto the orthogonal complement of the column space.
    """
    D = np.asarray(design, dtype=float)
    if D.ndim == 1:
        D = D.reshape(-1, 1)
    v = np.asarray(values, dtype=float)
    vec = v.ndim == 1
    V = v.reshape(-1, 1) if vec else v
    if V.shape[0] != D.shape[0]:
        raise FatalInputError(
            f"Row count mismatch: values have {V.shape[0]} rows, design has {D.shape[0]}."
        )
    coef, *_ = np.linalg.lstsq(D, V, rcond=None)
    resid = V - D @ coef
    return resid.ravel() if vec else resid
