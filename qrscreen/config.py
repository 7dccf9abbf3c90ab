"""Configuration loading for screening runs."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any

from qrscreen.core.types import ScreenConfig
from qrscreen.core.utils import validate_taus
from qrscreen.stats.adjust import validate_method


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load a run config from a strict JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def screen_config_from_dict(data: dict[str, Any] | None) -> ScreenConfig:
    """Build a ScreenConfig; unknown keys are rejected."""
    raw = dict(data or {})
    known = {f.name for f in fields(ScreenConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown screen config keys: {', '.join(unknown)}.")
    if "tau_list" in raw:
        raw["tau_list"] = validate_taus(raw["tau_list"])
    if "method" in raw:
        raw["method"] = validate_method(raw["method"])
    for key, cast in (
        ("threshold", float),
        ("top_count", int),
        ("top_percent", float),
        ("n_jobs", int),
        ("block_size", int),
        ("degenerate_tol", float),
    ):
        if key in raw:
            raw[key] = cast(raw[key])
    return ScreenConfig(**raw)
