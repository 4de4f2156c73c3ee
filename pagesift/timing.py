"""Stage timing for a single pipeline run.

Example:
    tracker = TimingTracker()

    with tracker.measure("render"):
        page = renderer.render(url)

    log_pipeline_event("url_complete", {"timings": tracker.get_all()})
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

__all__ = ["TimingTracker"]


class TimingTracker:
    """Track timing for the stages of one URL run.

    Not shared between runs; each run creates its own tracker.
    """

    def __init__(self):
        self.timings: Dict[str, Dict[str, Any]] = {}
        self.active_timers: Dict[str, float] = {}

    def start(self, operation: str) -> None:
        """Start timing an operation."""
        self.active_timers[operation] = time.perf_counter()

    def end(self, operation: str) -> float:
        """End timing and return duration in seconds."""
        if operation not in self.active_timers:
            return 0.0

        duration = time.perf_counter() - self.active_timers.pop(operation)

        if operation not in self.timings:
            self.timings[operation] = {"count": 0, "total_seconds": 0.0}

        stats = self.timings[operation]
        stats["count"] += 1
        stats["total_seconds"] += duration

        return duration

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Context manager for timing an operation."""
        self.start(operation)
        try:
            yield
        finally:
            self.end(operation)

    def total(self) -> float:
        return sum(stats["total_seconds"] for stats in self.timings.values())

    def get_all(self) -> Dict[str, float]:
        """Seconds per operation, rounded for logging."""
        return {op: round(stats["total_seconds"], 3) for op, stats in self.timings.items()}
