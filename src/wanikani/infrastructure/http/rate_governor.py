"""
Client-side rate governor.

Tracks the server's `RateLimit-*` headers and tells the pipeline how long to
wait before the next request. The governor only computes waits; sleeping is
left to the caller so tests can run without real time passing.
"""

import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from wanikani.domain.constants import (
    RATE_LIMIT_LIMIT_HEADER,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
    RATE_LIMIT_WINDOW,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitState:
    """Snapshot of what the governor currently believes. `reset` is epoch seconds."""

    limit: int | None = None
    remaining: int | None = None
    reset: float | None = None


class RateGovernor:
    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        window: int = RATE_LIMIT_WINDOW,
    ):
        self._clock = clock
        self._window = window
        self._limit: int | None = None
        self._remaining: int | None = None
        self._reset: float | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> RateLimitState:
        with self._lock:
            return RateLimitState(self._limit, self._remaining, self._reset)

    @property
    def reset_at(self) -> datetime | None:
        reset = self.state.reset
        if reset is None:
            return None
        return datetime.fromtimestamp(reset, tz=timezone.utc)

    def before_request(self) -> float:
        """
        Seconds to wait before sending, reserving one unit of quota.

        Unknown quota never blocks. With quota exhausted the wait lasts until
        the reset; once the reset has passed the window is assumed refreshed.
        """
        with self._lock:
            if self._remaining is None:
                return 0.0

            if self._remaining > 0:
                self._remaining -= 1
                return 0.0

            now = self._clock()
            if self._reset is None:
                self._reset = self._next_window(now)

            wait = self._reset - now
            if wait > 0:
                return wait

            # Window rolled over without a response telling us so.
            self._remaining = self._limit - 1 if self._limit else None
            self._reset = None
            return 0.0

    def after_response(self, headers: Mapping[str, str], status: int | None = None) -> None:
        """Fold rate headers into the state. A 429 always exhausts the quota."""
        headers = httpx.Headers(headers)
        limit = _parse_number(headers, RATE_LIMIT_LIMIT_HEADER)
        remaining = _parse_number(headers, RATE_LIMIT_REMAINING_HEADER)
        reset = _parse_number(headers, RATE_LIMIT_RESET_HEADER)

        with self._lock:
            if limit is not None:
                self._limit = int(limit)
            if remaining is not None:
                self._remaining = max(0, int(remaining))
            if reset is not None:
                self._reset = float(reset)

            if status == 429:
                now = self._clock()
                self._remaining = 0
                if self._reset is None or self._reset <= now:
                    self._reset = self._next_window(now)
                logger.warning(
                    f"Rate limited (429); next window at "
                    f"{datetime.fromtimestamp(self._reset, tz=timezone.utc).isoformat()}"
                )

    def _next_window(self, now: float) -> float:
        return now + (self._window - now % self._window)


def _parse_number(headers: httpx.Headers, name: str) -> float | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        logger.warning(f"Ignoring malformed {name} header: {value!r}")
        return None
    if not math.isfinite(number) or number < 0:
        logger.warning(f"Ignoring out-of-range {name} header: {value!r}")
        return None
    return number
