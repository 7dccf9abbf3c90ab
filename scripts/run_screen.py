#!/usr/bin/env python3
"""Run the quantile rank-score screening pipeline."""

from __future__ import annotations

from qrscreen.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
