"""Lightweight profiling: wall-clock timers.

Provides:
    - timer(): Context manager for wall-clock timing with optional sink
    - TimerAccumulator: Accumulate repeated measurements for averaging

Used to measure:
    - Each layer pass of a render (logged at debug)
    - Per-kind totals across renders (Pipeline.timings)

No heavy dependencies (no line_profiler or cProfile overhead).
"""

import time
from contextlib import contextmanager
from typing import Callable, Optional


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds)
        If None, prints to stdout

    Yields
    ------
    None

    Examples
    --------
    >>> with timer("blur"):
    ...     run_layer(layer, canvas)
    blur: 0.012 s

    >>> with timer("blur", sink=lambda n, s: logger.debug("%s took %.3f s", n, s)):
    ...     run_layer(layer, canvas)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            print(f"{name}: {elapsed:.3f} s")


class TimerAccumulator:
    """Accumulate multiple timing measurements for averaging.

    Attributes
    ----------
    name : str
        Timer name
    total_time : float
        Accumulated time in seconds
    count : int
        Number of measurements

    Examples
    --------
    >>> blur_timer = TimerAccumulator("blur")
    >>> for _ in range(10):
    ...     with blur_timer.measure():
    ...         run_layer(layer, canvas)
    >>> print(f"Mean: {blur_timer.mean():.4f} s")
    """

    def __init__(self, name: str):
        self.name = name
        self.total_time = 0.0
        self.count = 0

    def add(self, elapsed: float) -> None:
        """Record one externally measured duration."""
        self.total_time += elapsed
        self.count += 1

    @contextmanager
    def measure(self):
        """Context manager to measure and accumulate time."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.add(time.perf_counter() - start)

    def mean(self) -> float:
        """Mean time per measurement in seconds, or 0.0 if none."""
        return self.total_time / self.count if self.count > 0 else 0.0

    def reset(self) -> None:
        """Reset accumulated data."""
        self.total_time = 0.0
        self.count = 0

    def __repr__(self) -> str:
        return f"TimerAccumulator({self.name}, mean={self.mean():.4f}s, count={self.count})"
