"""Order-stable parallel map over predictor blocks."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from joblib import Parallel, delayed

T = TypeVar("T")
R = TypeVar("R")

BACKENDS: tuple[str, ...] = ("threading", "loky")


def _call_indexed(func: Callable[[T], R], indexed: tuple[int, T]) -> tuple[int, R]:
    idx, item = indexed
    return idx, func(item)


def parallel_map(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    n_jobs: int = 1,
    backend: str = "threading",
    batch_size: int | str = "auto",
) -> list[R]:
    """Apply `func` to items; output order always follows input order.

    Results are collected by item index, never by completion order.
    """
    seq = list(items)
    if not seq:
        return []
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Use one of: {', '.join(BACKENDS)}.")

    jobs = int(n_jobs)
    if jobs == 0:
        raise ValueError("n_jobs must be non-zero.")
    if jobs == 1 or len(seq) == 1:
        return [func(item) for item in seq]

    rows = Parallel(n_jobs=jobs, backend=backend, batch_size=batch_size)(
        delayed(_call_indexed)(func, pair) for pair in enumerate(seq)
    )
    rows.sort(key=lambda x: x[0])
    return [row for _, row in rows]
