"""Sliding-window admission control for outbound call attempts.

The limiter keeps one window per identifier (normally the sanitized caller
endpoint). It is a single-process store: counts are exact only inside one worker.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_STALE_SECONDS = 3600.0


@dataclass
class RateLimitWindow:
    identifier: str
    count: int
    window_start: float
    last_attempt: float


class RateLimiter:
    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.stale_seconds = stale_seconds
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}

    def check(self, identifier: str) -> bool:
        """Record an attempt for ``identifier`` and return whether it is admitted."""

        now = self._clock()
        window = self._windows.get(identifier)

        if window is None or now - window.window_start > self.window_seconds:
            self._windows[identifier] = RateLimitWindow(
                identifier=identifier,
                count=1,
                window_start=now,
                last_attempt=now,
            )
            return True

        if window.count >= self.max_attempts:
            LOGGER.info("Rate limit reached for %s (%d attempts)", identifier, window.count)
            return False

        window.count += 1
        window.last_attempt = now
        return True

    def get(self, identifier: str) -> RateLimitWindow | None:
        return self._windows.get(identifier)

    def cleanup(self) -> int:
        """Purge identifiers whose last attempt is older than the staleness threshold."""

        cutoff = self._clock() - self.stale_seconds
        stale = [key for key, window in self._windows.items() if window.last_attempt < cutoff]
        for key in stale:
            del self._windows[key]
        if stale:
            LOGGER.debug("Purged %d stale rate-limit windows", len(stale))
        return len(stale)

    def clear(self) -> None:
        self._windows.clear()

    @property
    def size(self) -> int:
        return len(self._windows)

    def __len__(self) -> int:
        return len(self._windows)
