"""Wall-clock timing of pipeline steps."""

import time
from contextlib import contextmanager
from typing import Iterator


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration.

    Examples:
        0.5 -> "0.5s"
        65.3 -> "1m 5.3s"
        3661.0 -> "1h 1m 1.0s"
    """
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, remaining = divmod(seconds, 60)
    minutes = int(minutes)
    if minutes < 60:
        return f"{minutes}m {remaining:.1f}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {remaining:.1f}s"


class StepTimings:
    """Records how long each executed step took, in execution order.

    A step that raises still gets its duration recorded.
    """

    def __init__(self) -> None:
        self.durations: dict[str, float] = {}

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        start = time.monotonic()
        try:
            yield
        finally:
            self.durations[name] = round(time.monotonic() - start, 3)

    @property
    def total(self) -> float:
        return sum(self.durations.values())

    def summary(self) -> str:
        """One-line summary, e.g. ``clone-repo: 2.1s | build: 1m 32.4s | total: 1m 34.5s``."""
        if not self.durations:
            return "(no steps executed)"
        parts = [f"{name}: {format_duration(d)}" for name, d in self.durations.items()]
        parts.append(f"total: {format_duration(self.total)}")
        return " | ".join(parts)
