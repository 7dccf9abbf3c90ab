"""Shared utilities for qrscreen workflows."""

from __future__ import annotations

import logging
import os
from pathlib import Path


def ensure_dir(path: str) -> None:
    """Create a directory (and parents) if it does not exist."""
    if path == "":
        return
    os.makedirs(path, exist_ok=True)


def setup_logger(log_path: Path, logger_name: str, level: int = logging.INFO) -> logging.Logger:
    """File + stream logger; re-running replaces the previous handlers."""
    ensure_dir(log_path.parent.as_posix())
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    for handler in (
        logging.FileHandler(log_path, mode="w", encoding="utf-8"),
        logging.StreamHandler(),
    ):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
