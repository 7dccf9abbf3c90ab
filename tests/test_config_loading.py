from __future__ import annotations

import json
from pathlib import Path

import pytest

from qrscreen.config import load_json_config, screen_config_from_dict
from qrscreen.core.types import ScreenConfig
from qrscreen.errors import FatalInputError


def test_load_example_config():
    root = Path(__file__).resolve().parents[1]
    cfg = load_json_config(root / "configs" / "qrscreen_example.json")
    assert "x_path" in cfg
    screen_cfg = screen_config_from_dict(cfg["screen"])
    assert screen_cfg.tau_list == (0.1, 0.25, 0.5, 0.75, 0.9)
    assert screen_cfg.method == "fdr"


def test_invalid_json_reports_line_and_column(tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"a": 1,}\n', encoding="utf-8")
    with pytest.raises(ValueError, match=r"line \d+, column \d+"):
        load_json_config(bad)


def test_non_object_json_config_rejected(tmp_path: Path):
    bad = tmp_path / "list.json"
    bad.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError, match="expected JSON object"):
        load_json_config(bad)


def test_non_json_extension_rejected(tmp_path: Path):
    bad = tmp_path / "cfg.yaml"
    bad.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Use a .json config file"):
        load_json_config(bad)


def test_screen_config_defaults_and_unknown_keys():
    assert screen_config_from_dict(None) == ScreenConfig()
    with pytest.raises(ValueError, match="Unknown screen config keys: colour"):
        screen_config_from_dict({"colour": "blue"})


def test_screen_config_rejects_unknown_method():
    with pytest.raises(FatalInputError):
        screen_config_from_dict({"method": "bonferroni"})
