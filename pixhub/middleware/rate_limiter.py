import math
import threading
import time
from typing import Callable


class RateLimiter:
    """
    Fixed-window request counter keyed by client.

    Each client gets `max_requests` hits per `window_seconds`; the window
    starts at the client's first hit and resets once it has elapsed.
    Thread-safe via Lock.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # client -> (window_start, hits)
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, client: str) -> tuple[bool, int]:
        """Count one request. Returns (allowed, seconds until the window resets)."""
        now = self._clock()
        with self._lock:
            start, hits = self._windows.get(client, (now, 0))
            if now - start >= self.window_seconds:
                start, hits = now, 0
            hits += 1
            self._windows[client] = (start, hits)
            self._evict(now)
        retry_after = max(1, math.ceil(start + self.window_seconds - now))
        return hits <= self.max_requests, retry_after

    def _evict(self, now: float) -> None:
        expired = [
            client for client, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for client in expired:
            del self._windows[client]
