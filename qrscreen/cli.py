"""Command-line entry point for CSV-based screening runs."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from qrscreen.compare import compare_adjustment
from qrscreen.config import load_json_config, screen_config_from_dict
from qrscreen.errors import FatalInputError
from qrscreen.report import plot_qq, result_to_frame, selections_to_frame, summary_row
from qrscreen.screening import screen_with_config
from qrscreen.utils import ensure_dir, setup_logger


def _read_table(path: str, index_col: Any) -> pd.DataFrame:
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Input file '{path}' not found.")
    return pd.read_csv(table_path, index_col=index_col)


def _align_rows(X: pd.DataFrame, table: pd.DataFrame, label: str) -> pd.DataFrame:
    """Reorder `table` to follow the row labels of X."""
    for name, frame in (("X", X), (label, table)):
        dup = frame.index[frame.index.duplicated()]
        if len(dup):
            raise FatalInputError(f"Duplicate row labels in {name}: {list(dup[:5])}.")
    missing = X.index.difference(table.index)
    extra = table.index.difference(X.index)
    if len(missing) or len(extra):
        raise FatalInputError(
            f"Row labels of {label} do not match X: "
            f"{len(missing)} missing, {len(extra)} unexpected."
        )
    return table.loc[X.index]


def _prepare_dirs(outdir: Path) -> tuple[Path, Path, Path]:
    results_dir = outdir / "results"
    figures_dir = outdir / "figures"
    logs_dir = outdir / "logs"
    for d in (results_dir, figures_dir, logs_dir):
        ensure_dir(d.as_posix())
    return results_dir, figures_dir, logs_dir


def run_screen_pipeline(config_path: str) -> Path:
    """Run a screen described by a JSON config; returns the results directory."""
    cfg = load_json_config(config_path)
    for key in ("x_path", "y_path"):
        if key not in cfg:
            raise ValueError(f"Config '{config_path}' is missing required key '{key}'.")
    screen_cfg = screen_config_from_dict(cfg.get("screen"))

    outdir = Path(cfg.get("outdir", "."))
    results_dir, figures_dir, logs_dir = _prepare_dirs(outdir)
    logger = setup_logger(logs_dir / "qrscreen.log", "qrscreen_cli")

    index_col = cfg.get("index_col", 0)
    X = _read_table(cfg["x_path"], index_col)
    y_table = _read_table(cfg["y_path"], index_col)
    y_column = cfg.get("y_column")
    if y_column is None:
        if y_table.shape[1] != 1:
            raise ValueError("y_column is required when the Y table has several columns.")
        y_column = y_table.columns[0]
    if y_column not in y_table.columns:
        raise KeyError(f"Column '{y_column}' not found in {cfg['y_path']}.")
    Y = _align_rows(X, y_table, "Y")[y_column]
    Z = None
    if cfg.get("z_path"):
        Z = _align_rows(X, _read_table(cfg["z_path"], index_col), "Z")
    logger.info(
        "Inputs: X=%s Y=%s[%s] Z=%s", cfg["x_path"], cfg["y_path"], y_column, cfg.get("z_path")
    )

    result = screen_with_config(X, Y, Z, screen_cfg, logger=logger)

    result_to_frame(result).to_csv(results_dir / "screen_results.csv", index=False)
    selections_to_frame(result).to_csv(results_dir / "selections.csv", index=False)
    pd.DataFrame([summary_row(result)]).to_csv(results_dir / "screen_summary.csv", index=False)
    plot_qq(result.combined, figures_dir / "qq_combined.png", "Combined p-values")

    if bool(cfg.get("compare", False)):
        comparison = compare_adjustment(X, Y, Z, screen_cfg.tau_list, logger=logger)
        comparison.to_csv(results_dir / "adjustment_comparison.csv", index=False)

    logger.info("Screen pipeline complete. Results in %s", results_dir.as_posix())
    return results_dir


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Quantile rank-score screening")
    parser.add_argument(
        "--config",
        default="configs/qrscreen_example.json",
        help="Path to JSON config",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        run_screen_pipeline(args.config)
    except FatalInputError as exc:
        parser.exit(2, f"error: {exc}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
