import time

import pytest

from qrscreen.parallel import parallel_map


def _slow_square(x: int) -> int:
    time.sleep(0.01 * (5 - x))
    return x * x


def test_parallel_map_preserves_input_order():
    items = [0, 1, 2, 3, 4]
    assert parallel_map(_slow_square, items, n_jobs=3) == [0, 1, 4, 9, 16]
    assert parallel_map(_slow_square, items, n_jobs=1) == [0, 1, 4, 9, 16]


def test_parallel_map_empty_and_bad_backend():
    assert parallel_map(_slow_square, [], n_jobs=2) == []
    with pytest.raises(ValueError, match="Unknown backend"):
        parallel_map(_slow_square, [1, 2], n_jobs=2, backend="dask")
