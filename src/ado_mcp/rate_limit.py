"""Fixed-window rate limiting for outbound Azure DevOps requests.

One limiter is owned by each AzureDevOpsClient, so independent clients in the
same process never share a counter.

Window semantics:
- The window rolls over when more than window_ms has elapsed since it started
- Each check increments the counter first, then compares against the ceiling
- Rejected checks are still counted; the counter only resets on rollover
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger("ado-mcp.rate_limit")


RATE_LIMIT_WINDOW_MS = 60_000
RATE_LIMIT_MAX_REQUESTS = 100


def _monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class RateLimitExceeded(Exception):
    """Raised when the request ceiling for the current window is exceeded."""

    def __init__(self, message: str, count: int, max_requests: int, retry_after_ms: int):
        super().__init__(message)
        self.count = count
        self.max_requests = max_requests
        self.retry_after_ms = retry_after_ms


@dataclass
class RateWindow:
    """Mutable counter state for the current window."""
    count: int = 0
    window_start_ms: int = 0


class FixedWindowRateLimiter:
    """Bound calls to max_requests per window_ms.

    Args:
        max_requests: Ceiling per window (default 100)
        window_ms: Window length in milliseconds (default 60000)
        clock: Callable returning the current time in milliseconds
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        clock: Optional[Callable[[], int]] = None,
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock or _monotonic_ms
        self._lock = threading.Lock()
        self.window = RateWindow(count=0, window_start_ms=self._clock())

    def check(self) -> None:
        """Count one call against the current window.

        Raises:
            RateLimitExceeded: if this call pushes the count past max_requests
        """
        with self._lock:
            now = self._clock()
            if now - self.window.window_start_ms > self.window_ms:
                self.window.count = 0
                self.window.window_start_ms = now

            self.window.count += 1
            count = self.window.count
            retry_after_ms = max(0, self.window.window_start_ms + self.window_ms - now)

        if count > self.max_requests:
            logger.warning(f"Rate limit exceeded: {count} calls in current window (max {self.max_requests})")
            raise RateLimitExceeded(
                "Rate limit exceeded. Please wait before making more requests.",
                count=count,
                max_requests=self.max_requests,
                retry_after_ms=retry_after_ms,
            )

    @property
    def remaining(self) -> int:
        """Calls left in the current window (0 once the ceiling is reached)."""
        with self._lock:
            if self._clock() - self.window.window_start_ms > self.window_ms:
                return self.max_requests
            return max(0, self.max_requests - self.window.count)

    def reset(self) -> None:
        """Start a fresh window at the current time."""
        with self._lock:
            self.window.count = 0
            self.window.window_start_ms = self._clock()
