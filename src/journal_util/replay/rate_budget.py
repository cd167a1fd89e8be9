from __future__ import annotations

import time
from typing import Callable


class RateBudget:
    """Counts journal API calls in a fixed window that restarts once it has elapsed"""

    def __init__(
        self,
        max_per_window: int = 30,
        window_secs: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_per_window = max_per_window
        self.window_secs = window_secs
        self._clock = clock
        self.window_start = clock()
        self.requests_this_window = 0

    def _roll(self) -> None:
        now = self._clock()
        if now - self.window_start >= self.window_secs:
            self.window_start = now
            self.requests_this_window = 0

    def has_capacity(self) -> bool:
        self._roll()
        return self.requests_this_window < self.max_per_window

    def record(self) -> None:
        self._roll()
        self.requests_this_window += 1

    def remaining_window(self) -> float:
        """Seconds until the current window rolls over"""
        return max(0.0, self.window_secs - (self._clock() - self.window_start))
