from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from app.core.errors import RateLimited


class RateLimiter(ABC):
    """Throttle attempts per client key. ``hit`` raises ``RateLimited`` once over the limit."""

    @abstractmethod
    def hit(self, key: str) -> None:
        ...

    @abstractmethod
    def reset(self, key: Optional[str] = None) -> None:
        ...


@dataclass
class Window:
    started: float
    count: int = 0


class FixedWindowRateLimiter(RateLimiter):
    """
    Fixed window counter: allow ``max_attempts`` per ``window_seconds`` for each key.
    At most ``max_keys`` windows are tracked; stale ones are dropped first.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        max_keys: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError('max_attempts must be positive')
        if window_seconds <= 0:
            raise ValueError('window_seconds must be positive')
        if max_keys <= 0:
            raise ValueError('max_keys must be positive')
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._windows: dict[str, Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now - window.started >= self.window_seconds:
                if window is None and len(self._windows) >= self.max_keys:
                    self._prune(now)
                window = Window(started=now)
                self._windows[key] = window
            window.count += 1
            if window.count <= self.max_attempts:
                return
            retry_after = self.window_seconds - (now - window.started)
        logger.warning('auth.login.rate_limited', client=key, retry_after=round(retry_after, 3))
        raise RateLimited(retry_after=retry_after)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> None:
        stale = [key for key, window in self._windows.items() if now - window.started >= self.window_seconds]
        for key in stale:
            del self._windows[key]
        # Still full: evict the oldest windows.
        overflow = len(self._windows) - self.max_keys + 1
        if overflow > 0:
            oldest = sorted(self._windows.items(), key=lambda item: item[1].started)[:overflow]
            for key, _ in oldest:
                del self._windows[key]
