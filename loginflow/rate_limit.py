"""
Sliding-window login limiter keyed by source address.

Each attempt reserves a slot before the credentials are checked; the caller
releases the slot again when the attempt succeeds, so only failures use up
the quota. Check and reserve happen under one lock so a burst of concurrent
requests from the same address cannot slip past the limit.
"""
from __future__ import annotations

import math
import time
from threading import Lock
from typing import Callable

from .errors import RateLimitError

MAX_ATTEMPTS = 5
WINDOW_SECONDS = 900  # 15 minutes
SWEEP_EVERY = 256  # acquisitions between full sweeps of idle addresses


class LoginRateLimiter:
    def __init__(
        self,
        max_attempts: int = MAX_ATTEMPTS,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_every: int = SWEEP_EVERY,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: dict[str, list[float]] = {}
        self._lock = Lock()
        self._sweep_every = max(1, sweep_every)
        self._since_sweep = 0

    def _prune(self, key: str, now: float) -> list[float]:
        cutoff = now - self.window_seconds
        recent = [stamp for stamp in self._attempts.get(key, []) if stamp > cutoff]
        if recent:
            self._attempts[key] = recent
        else:
            self._attempts.pop(key, None)
        return recent

    def _sweep(self, now: float) -> None:
        for key in list(self._attempts):
            self._prune(key, now)

    def acquire(self, key: str) -> float:
        """Reserve an attempt slot for ``key`` or raise ``RateLimitError``.

        Returns a ticket to hand back to :meth:`release`.
        """
        with self._lock:
            now = self._clock()
            self._since_sweep += 1
            if self._since_sweep >= self._sweep_every:
                self._since_sweep = 0
                self._sweep(now)
            recent = self._prune(key, now)
            if len(recent) >= self.max_attempts:
                retry_after = math.ceil(self.window_seconds - (now - recent[0]))
                minutes = max(1, math.ceil(retry_after / 60))
                raise RateLimitError(
                    f"Too many login attempts. Please try again in {minutes} minute"
                    f"{'' if minutes == 1 else 's'}.",
                    retry_after=max(1, retry_after),
                )
            self._attempts.setdefault(key, []).append(now)
            return now

    def release(self, key: str, ticket: float) -> None:
        """Give back a reserved slot, used once an attempt succeeds."""
        with self._lock:
            entries = self._attempts.get(key)
            if not entries:
                return
            try:
                entries.remove(ticket)
            except ValueError:
                return
            if not entries:
                del self._attempts[key]

    def remaining(self, key: str) -> int:
        with self._lock:
            return max(0, self.max_attempts - len(self._prune(key, self._clock())))

    def __len__(self) -> int:
        """Number of addresses currently tracked."""
        with self._lock:
            return len(self._attempts)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)


__all__ = ["LoginRateLimiter", "MAX_ATTEMPTS", "WINDOW_SECONDS"]
