"""Tabular and graphical presentation of screening results."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from qrscreen.core.types import ScreenResult
from qrscreen.core.utils import format_tau
from qrscreen.utils import ensure_dir


def result_to_frame(result: ScreenResult) -> pd.DataFrame:
    """One row per predictor, in input order, with a 1-based `rank` by adjusted p."""
    data: dict[str, object] = {
        "predictor": list(result.predictors),
        "p_combined": result.combined,
        "p_composite": result.composite,
    }
    for j, tau in enumerate(result.taus):
        data[f"p_tau_{format_tau(tau)}"] = result.pvalues[:, j]
    data["adj_combined"] = result.adjusted
    for j, tau in enumerate(result.taus):
        data[f"adj_tau_{format_tau(tau)}"] = result.adjusted_per_tau[:, j]
    data["degenerate"] = result.degenerate.astype(bool)
    data["composite_failed"] = result.composite_failed.astype(bool)
    frame = pd.DataFrame(data)
    order = np.argsort(np.where(np.isfinite(result.adjusted), result.adjusted, np.inf), kind="mergesort")
    rank = np.empty(order.size, dtype=int)
    rank[order] = np.arange(1, order.size + 1)
    frame["rank"] = rank
    return frame


def selections_to_frame(result: ScreenResult) -> pd.DataFrame:
    rows = []
    for kind, idx in (
        ("threshold", result.threshold_set),
        ("top_count", result.top_count_set),
        ("top_percent", result.top_percent_set),
    ):
        for i in idx:
            rows.append(
                {
                    "selection": kind,
                    "predictor": result.predictors[int(i)],
                    "adj_combined": float(result.adjusted[int(i)]),
                }
            )
    return pd.DataFrame(rows, columns=["selection", "predictor", "adj_combined"])


def summary_row(result: ScreenResult) -> dict[str, object]:
    return {
        "n_predictors": result.n_predictors,
        "n_taus": len(result.taus),
        "method": result.method,
        "threshold": result.threshold,
        "n_threshold": int(result.threshold_set.size),
        "n_top_count": int(result.top_count_set.size),
        "n_top_percent": int(result.top_percent_set.size),
        "n_degenerate": int(np.sum(result.degenerate)),
        "n_composite_failed": int(np.sum(result.composite_failed)),
        "n_diagnostics": len(result.diagnostics),
    }


def split_identifier(
    frame: pd.DataFrame,
    column: str = "predictor",
    sep: str = ":",
    fields: Sequence[str] = ("chrom", "pos", "ref", "alt"),
) -> pd.DataFrame:
    """Decompose structured identifiers (e.g. `chr1:12345:A:G`) into columns.

    Identifiers with fewer parts leave the trailing fields as NaN; extra parts
    stay joined in the last field.
    """
    if column not in frame.columns:
        raise KeyError(f"Column '{column}' not found.")
    names = list(fields)
    if not names:
        raise ValueError("fields must be non-empty.")
    parts = (
        frame[column]
        .astype(str)
        .str.split(sep, n=len(names) - 1, expand=True)
        .reindex(columns=range(len(names)))
    )
    parts.columns = names
    out = frame.copy()
    for name in names:
        out[name] = parts[name].to_numpy()
    return out


def plot_qq(pvals: np.ndarray, out_png: Path, title: str) -> None:
    import matplotlib.pyplot as plt

    p = np.asarray(pvals, dtype=float)
    p = p[np.isfinite(p) & (p > 0.0)]
    n = p.size
    if n == 0:
        return
    ensure_dir(Path(out_png).parent.as_posix())
    obs = -np.log10(np.sort(p))
    exp = -np.log10(np.arange(1, n + 1) / (n + 1))
    fig, ax = plt.subplots(figsize=(4, 4))
    ax.scatter(exp, obs, s=10, color="black")
    lim = float(max(exp.max(), obs.max()))
    ax.plot([0, lim], [0, lim], color="red", linestyle="--")
    ax.set_title(title)
    ax.set_xlabel("Expected -log10(p)")
    ax.set_ylabel("Observed -log10(p)")
    fig.tight_layout()
    fig.savefig(Path(out_png).as_posix(), dpi=150)
    plt.close(fig)
