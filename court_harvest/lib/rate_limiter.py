"""Courtesy delays between requests to the court records site."""

import threading
import time
from typing import Callable, Optional

from loguru import logger


class RateLimiter:
    """Keeps a minimum gap between consecutive case-page visits.

    The gap is measured from the previous call, so time spent parsing a
    page counts towards it. Waiting on a cancel event ends early once the
    event is set.
    """

    def __init__(
        self,
        interval_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.interval_seconds = max(0.0, float(interval_seconds))
        self._clock = clock
        self._sleep = sleep
        self._previous: Optional[float] = None

    def pause(self, seconds: float, cancel_event: Optional[threading.Event] = None) -> None:
        if seconds <= 0:
            return
        if cancel_event is not None:
            cancel_event.wait(seconds)
        else:
            self._sleep(seconds)

    def wait_if_needed(self, cancel_event: Optional[threading.Event] = None) -> float:
        """Sleep for whatever is left of the interval; returns the delay applied."""
        delay = 0.0
        if self._previous is not None:
            delay = max(0.0, self.interval_seconds - (self._clock() - self._previous))
        if delay > 0:
            logger.debug(f"Courtesy delay {delay:.2f}s before next case")
            self.pause(delay, cancel_event)
        self._previous = self._clock()
        return delay

    def reset(self) -> None:
        self._previous = None


class EthicalRateLimiter(RateLimiter):
    """Adds an exponential backoff after failed case checks."""

    def __init__(
        self,
        interval_seconds: float = 3.0,
        backoff_factor: float = 1.0,
        max_backoff_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(interval_seconds, clock=clock, sleep=sleep)
        self.backoff_factor = float(backoff_factor)
        self.max_backoff_seconds = float(max_backoff_seconds)
        self.failure_count = 0

    def record_failure(self) -> float:
        """Count a failure; returns the backoff before the next attempt."""
        self.failure_count += 1
        return min(self.max_backoff_seconds, self.backoff_factor * 2 ** (self.failure_count - 1))

    def reset_failures(self) -> None:
        self.failure_count = 0
