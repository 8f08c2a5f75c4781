# easing_probe/utils/timing.py
from __future__ import annotations

import functools
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar, ParamSpec

from easing_probe.utils.logger import get_logger

P = ParamSpec("P")
T = TypeVar("T")


def now_ms() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


def sleep_ms(ms: int) -> None:
    """Blocking sleep. Never use inside a live page session: it starves the Playwright dispatcher."""
    if ms > 0:
        time.sleep(ms / 1000.0)


@dataclass
class Stopwatch:
    start_ms: Optional[int] = None

    def start(self) -> "Stopwatch":
        self.start_ms = now_ms()
        return self

    def elapsed_ms(self) -> int:
        return 0 if self.start_ms is None else max(0, now_ms() - self.start_ms)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


def linear_backoff_delays_ms(attempts: int, step_ms: int, ceiling_ms: int) -> Iterator[int]:
    """
    One delay per gap between `attempts` tries: step, 2*step, 3*step...
    The running total is clipped to `ceiling_ms`; once it is spent the
    remaining gaps are 0.
    """
    budget = max(0, ceiling_ms)
    for n in range(1, max(1, attempts)):
        delay = min(max(0, step_ms) * n, budget)
        budget -= delay
        yield delay


def wait_for(
    predicate: Callable[[], T],
    timeout_ms: int,
    interval_ms: int = 100,
    description: Optional[str] = None,
    sleep: Callable[[int], object] = sleep_ms,
) -> T:
    """
    Poll `predicate()` until it returns something truthy, and return that.

    `sleep` takes milliseconds. Pass `page.wait_for_timeout` so binding and
    response callbacks keep arriving while we wait.

    Raises:
        TimeoutError once `timeout_ms` has elapsed.
    """
    deadline = now_ms() + max(0, timeout_ms)
    while True:
        value = predicate()
        if value:
            return value
        left = deadline - now_ms()
        if left <= 0:
            suffix = f" ({description})" if description else ""
            raise TimeoutError(f"wait_for timed out after {timeout_ms} ms{suffix}")
        sleep(max(1, min(interval_ms, left)))


def measure(label: str = "", level: str = "INFO") -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Log how long the wrapped call took:
        @measure("static extraction", level="DEBUG")
        def collect(self, page): ...
    """
    log = get_logger(__name__)
    log_fn = getattr(log, level.lower(), log.info)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with Stopwatch() as sw:
                try:
                    return func(*args, **kwargs)
                finally:
                    ms = sw.elapsed_ms()
                    took = f"{ms} ms" if ms < 1000 else f"{ms / 1000:.3f} s"
                    log_fn(f"{label or func.__name__} took {took}")
        return wrapper
    return decorator
