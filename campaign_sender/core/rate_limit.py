"""Thread-safe sliding-window rate limiter for record throughput."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)


class SlidingWindowRateLimiter:
    """Admit at most ``rate`` units within any window of ``window`` seconds.

    Each admission is logged with its timestamp; a request for ``amount``
    units waits until enough earlier admissions have aged out of the window.
    """

    def __init__(
        self,
        rate: int,
        window: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate < 1:
            msg = "rate must be >= 1"
            raise ValueError(msg)
        if window <= 0:
            msg = "window must be > 0"
            raise ValueError(msg)
        self.rate = rate
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._admitted: deque[tuple[float, int]] = deque()
        self._in_window = 0

    def _evict(self, now: float) -> None:
        while self._admitted and self._admitted[0][0] + self.window <= now:
            _, amount = self._admitted.popleft()
            self._in_window -= amount

    def _wait_time(self, amount: int, now: float) -> float:
        excess = self._in_window + amount - self.rate
        freed = 0
        for admitted_at, admitted in self._admitted:
            freed += admitted
            if freed >= excess:
                return max(admitted_at + self.window - now, 0.0)
        return self.window

    def try_acquire(self, amount: int) -> float:
        """Admit ``amount`` units now if the budget allows.

        Returns 0.0 on admission, otherwise the seconds to wait before retrying.
        """
        if amount > self.rate:
            msg = f"amount {amount} exceeds rate {self.rate}"
            raise ValueError(msg)
        with self._lock:
            now = self._clock()
            self._evict(now)
            if self._in_window + amount <= self.rate:
                self._admitted.append((now, amount))
                self._in_window += amount
                return 0.0
            return self._wait_time(amount, now)

    def acquire(self, amount: int, cancel_event: threading.Event | None = None) -> bool:
        """Block until ``amount`` units are admitted.

        Returns False without admitting if ``cancel_event`` is set while waiting.
        """
        while True:
            wait = self.try_acquire(amount)
            if wait == 0.0:
                return True
            logger.debug("rate_limit_wait", amount=amount, wait_seconds=round(wait, 3))
            if cancel_event is not None:
                if cancel_event.wait(wait):
                    return False
            else:
                self._sleep(wait)
