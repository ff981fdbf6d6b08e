# -*- coding: utf-8 -*-
"""Security — fixed-window rate limiter."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    def __init__(
        self,
        max_attempts: int,
        window_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.window_s = float(window_s)
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> bool:
        """Count an attempt; False once the identifier exhausted its window."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or now > window.reset_at:
                self._windows[identifier] = _Window(count=1, reset_at=now + self.window_s)
                return True
            if window.count >= self.max_attempts:
                return False
            window.count += 1
            return True

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._windows.pop(identifier, None)

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, w in self._windows.items() if now > w.reset_at]
            for k in expired:
                del self._windows[k]
        return len(expired)


auth_limiter = RateLimiter(5, 300)
api_limiter = RateLimiter(100, 60)
sensitive_limiter = RateLimiter(3, 600)
