"""Fixed minimum spacing between outbound calls."""

from __future__ import annotations

import time
from typing import Callable


class RateLimiter:
    """Block in :meth:`wait` until ``min_interval`` seconds have passed since the last call."""

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None

    def wait(self) -> float:
        """Sleep as needed, mark the call and return the seconds slept."""

        slept = 0.0
        now = self._clock()
        if self._last_call is not None:
            remaining = self.min_interval - (now - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
                slept = remaining
                now = self._clock()
        self._last_call = now
        return slept


__all__ = ["RateLimiter"]
