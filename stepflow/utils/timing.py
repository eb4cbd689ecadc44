# stepflow/utils/timing.py
from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, ParamSpec

from stepflow.utils.config import Settings
from stepflow.utils.logger import get_logger

P = ParamSpec("P")
T = TypeVar("T")


# ---------------- Monotonic time helpers ----------------

def now_ms() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


def sleep_ms(ms: float) -> None:
    """Sleep for `ms` milliseconds (blocking)."""
    if ms <= 0:
        return
    time.sleep(ms / 1000.0)


# ---------------- Stopwatch ----------------

@dataclass
class Stopwatch:
    """Simple stopwatch usable as a context manager."""
    start_ms: Optional[int] = None

    def start(self) -> "Stopwatch":
        self.start_ms = now_ms()
        return self

    def elapsed_ms(self) -> int:
        if self.start_ms is None:
            return 0
        return max(0, now_ms() - self.start_ms)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


# ---------------- Humanized pacing ----------------

@dataclass(frozen=True)
class JitterPolicy:
    """
    Randomized delays that make driver input look less robotic.
    Only timing is affected; nothing here decides whether a step passes.
    """
    click_min_ms: int = 100
    click_max_ms: int = 300
    key_min_ms: int = 50
    key_max_ms: int = 150
    enabled: bool = True

    @classmethod
    def from_settings(cls, s: Settings) -> "JitterPolicy":
        return cls(
            click_min_ms=s.CLICK_DELAY_MIN_MS,
            click_max_ms=s.CLICK_DELAY_MAX_MS,
            key_min_ms=s.KEY_DELAY_MIN_MS,
            key_max_ms=s.KEY_DELAY_MAX_MS,
            enabled=s.HUMANIZE,
        )

    @classmethod
    def disabled(cls) -> "JitterPolicy":
        return cls(enabled=False)

    def click_delay_ms(self) -> int:
        if not self.enabled:
            return 0
        return random.randint(self.click_min_ms, max(self.click_min_ms, self.click_max_ms))

    def keystroke_delay_ms(self) -> int:
        if not self.enabled:
            return 0
        return random.randint(self.key_min_ms, max(self.key_min_ms, self.key_max_ms))


# ---------------- measure decorator ----------------

def measure(label: str = "", level: str = "DEBUG") -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator to log the execution time of a function.
    Example:
        @measure("navigate")
        def _do_navigate(...): ...
    """
    level = level.upper()

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            log = get_logger(__name__)
            log_fn = getattr(log, level.lower(), log.debug)
            with Stopwatch() as sw:
                try:
                    return func(*args, **kwargs)
                finally:
                    ms = sw.elapsed_ms()
                    human = f"{ms} ms" if ms < 1000 else f"{ms/1000:.3f} s"
                    log_fn(f"{label or func.__name__} took {human}")
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator
