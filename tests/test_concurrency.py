from __future__ import annotations

import threading
import time
from typing import Iterable

import pytest

from diagram_docs.util.concurrency import parallel_map_ordered


def test_parallel_map_ordered_preserves_order() -> None:
    def slow_for_small(x: int) -> int:
        time.sleep(0.01 * (5 - x))
        return x * 2

    assert parallel_map_ordered(slow_for_small, range(5), max_workers=3) == [0, 2, 4, 6, 8]


def test_parallel_map_ordered_bounds_inflight_calls() -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def work(x: int) -> int:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.005)
        with lock:
            active -= 1
        return x

    assert parallel_map_ordered(work, list(range(12)), max_workers=2) == list(range(12))
    assert peak <= 2


def test_parallel_map_ordered_consumes_generators() -> None:
    def gen() -> Iterable[int]:
        yield from range(4)

    assert parallel_map_ordered(lambda x: x + 1, gen(), max_workers=0) == [1, 2, 3, 4]


def test_parallel_map_ordered_propagates_errors() -> None:
    def boom(x: int) -> int:
        if x == 2:
            raise RuntimeError("bad item")
        return x

    with pytest.raises(RuntimeError, match="bad item"):
        parallel_map_ordered(boom, range(4), max_workers=2)
