"""Wall-clock timing of an orchestrator run."""

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


class RunTimer:
    """Durations of one run: the whole run and each repository's pass.

    A repository's duration covers its sync and pipeline, and is recorded
    even when the pass is cut short by a fatal error.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started = clock()
        self.repositories: dict[str, float] = {}

    @contextmanager
    def repository(self, name: str) -> Iterator[None]:
        started = self._clock()
        try:
            yield
        finally:
            self.repositories[name] = round(self._clock() - started, 3)

    @property
    def total(self) -> float:
        return self._clock() - self._started

    def slowest(self) -> Optional[str]:
        if not self.repositories:
            return None
        return max(self.repositories, key=self.repositories.__getitem__)


def format_duration(seconds: float) -> str:
    """Render seconds as e.g. "0.5s", "1m 5.3s" or "1h 1m 1.0s"."""
    minutes, secs = divmod(seconds, 60)
    if not minutes:
        return f"{secs:.1f}s"
    hours, minutes = divmod(int(minutes), 60)
    if not hours:
        return f"{minutes}m {secs:.1f}s"
    return f"{hours}h {minutes}m {secs:.1f}s"
