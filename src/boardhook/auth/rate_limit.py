"""In-memory per-API-key rate limiting."""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from boardhook.auth.exceptions import RateLimitExceededError

DEFAULT_LIMIT = 60  # requests per window
DEFAULT_WINDOW_SECONDS = 60


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter keyed by API key id.

    State is process-local; multiple server processes each enforce their
    own limit.
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, api_key_id: str) -> None:
        """Count one request for the key.

        Raises:
            RateLimitExceededError: If the key has exceeded its limit in the
                current window. ``retry_after`` is the whole number of seconds
                until the window resets.
        """
        now = self._clock()
        with self._lock:
            window = self._windows.get(api_key_id)
            if window is None or window.reset_at < now:
                self._windows[api_key_id] = _Window(count=1, reset_at=now + self.window_seconds)
                return

            window.count += 1
            if window.count > self.limit:
                retry_after = max(1, math.ceil(window.reset_at - now))
                raise RateLimitExceededError(retry_after)

    def reset(self) -> None:
        """Forget every window."""
        with self._lock:
            self._windows.clear()
