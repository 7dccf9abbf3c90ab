from __future__ import annotations

import json
import os
from pathlib import Path

import matplotlib
import numpy as np
import pandas as pd
import pytest

os.environ.setdefault("MPLBACKEND", "Agg")
matplotlib.use("Agg", force=True)

from qrscreen import cli
from qrscreen.errors import FatalInputError


def _write_inputs(tmp_path: Path) -> dict[str, str]:
    rng = np.random.default_rng(21)
    n = 40
    ids = [f"s{i}" for i in range(n)]
    Z = pd.DataFrame({"age": rng.normal(size=n)}, index=ids)
    X = pd.DataFrame(
        rng.normal(size=(n, 3)), columns=["1:10:A:G", "1:20:C:T", "2:5:G:A"], index=ids
    )
    y = pd.DataFrame({"y": X.iloc[:, 0].to_numpy() + Z["age"].to_numpy() + rng.normal(size=n)}, index=ids)
    paths = {
        "x_path": tmp_path / "x.csv",
        "y_path": tmp_path / "y.csv",
        "z_path": tmp_path / "z.csv",
    }
    X.to_csv(paths["x_path"])
    y.to_csv(paths["y_path"])
    Z.to_csv(paths["z_path"])
    return {k: v.as_posix() for k, v in paths.items()}


def test_cli_writes_results(tmp_path: Path):
    cfg = _write_inputs(tmp_path)
    cfg.update(
        {
            "y_column": "y",
            "outdir": (tmp_path / "out").as_posix(),
            "compare": True,
            "screen": {"tau_list": [0.25, 0.5, 0.75], "top_count": 2},
        }
    )
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps(cfg), encoding="utf-8")

    rc = cli.main(["--config", cfg_path.as_posix()])

    assert rc == 0
    results = tmp_path / "out" / "results"
    frame = pd.read_csv(results / "screen_results.csv")
    assert frame["predictor"].tolist() == ["1:10:A:G", "1:20:C:T", "2:5:G:A"]
    assert (results / "selections.csv").exists()
    assert (results / "screen_summary.csv").exists()
    assert len(pd.read_csv(results / "adjustment_comparison.csv")) == 9
    assert (tmp_path / "out" / "figures" / "qq_combined.png").exists()
    assert "Screen pipeline complete" in (tmp_path / "out" / "logs" / "qrscreen.log").read_text()


def test_cli_exits_with_code_two_on_fatal_input(tmp_path: Path):
    cfg = _write_inputs(tmp_path)
    cfg.update({"outdir": (tmp_path / "out").as_posix(), "screen": {"method": "fdr", "tau_list": [0.5]}})
    pd.DataFrame({"y": np.arange(5.0)}).to_csv(cfg["y_path"])
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps(cfg), encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        cli.main(["--config", cfg_path.as_posix()])
    assert exc.value.code == 2


def test_missing_required_key(tmp_path: Path):
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps({"y_path": "y.csv"}), encoding="utf-8")
    with pytest.raises(ValueError, match="x_path"):
        cli.run_screen_pipeline(cfg_path.as_posix())


def _run(tmp_path: Path, cfg: dict, name: str) -> pd.DataFrame:
    cfg = dict(cfg, outdir=(tmp_path / name).as_posix(), screen={"tau_list": [0.25, 0.5, 0.75]})
    cfg_path = tmp_path / f"{name}.json"
    cfg_path.write_text(json.dumps(cfg), encoding="utf-8")
    assert cli.main(["--config", cfg_path.as_posix()]) == 0
    return pd.read_csv(tmp_path / name / "results" / "screen_results.csv")


def test_shuffled_rows_are_matched_by_label(tmp_path: Path):
    cfg = _write_inputs(tmp_path)
    ordered = _run(tmp_path, cfg, "ordered")

    y = pd.read_csv(cfg["y_path"], index_col=0)
    z = pd.read_csv(cfg["z_path"], index_col=0)
    rng = np.random.default_rng(3)
    y.iloc[rng.permutation(len(y))].to_csv(cfg["y_path"])
    z.iloc[rng.permutation(len(z))].to_csv(cfg["z_path"])
    shuffled = _run(tmp_path, cfg, "shuffled")

    assert np.allclose(shuffled["p_combined"], ordered["p_combined"])
    assert shuffled.loc[0, "p_combined"] < 0.01


@pytest.mark.parametrize("edit", ["drop", "duplicate"])
def test_mismatched_row_labels_are_fatal(tmp_path: Path, edit: str):
    cfg = _write_inputs(tmp_path)
    y = pd.read_csv(cfg["y_path"], index_col=0)
    if edit == "drop":
        y = y.drop(index="s3").rename(index={"s4": "other"})
    else:
        y = y.rename(index={"s4": "s3"})
    y.to_csv(cfg["y_path"])
    cfg.update({"outdir": (tmp_path / "out").as_posix(), "screen": {"tau_list": [0.5]}})
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps(cfg), encoding="utf-8")

    with pytest.raises(FatalInputError, match="row labels|Row labels"):
        cli.run_screen_pipeline(cfg_path.as_posix())
