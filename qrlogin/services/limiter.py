import threading
import time
from typing import Callable

from fastapi import Request

from qrlogin.services.errors import RateLimited


class RateLimiter:
    def __init__(self, max_requests: int, window_seconds: float, enabled: bool = True, clock: Callable[[], float] = time.monotonic):
        """
        Sliding-window limiter keyed by client IP.

        :param max_requests: requests allowed per window
        :param window_seconds: window length in seconds
        :param enabled: a disabled limiter lets everything through
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self._clock = clock
        self._requests: dict[str, list[float]] = {}  # Stores IP -> [timestamp1, timestamp2...]
        self._last_prune = clock()
        self._lock = threading.Lock()

    @property
    def tracked_clients(self) -> int:
        return len(self._requests)

    def _prune(self, now: float) -> None:
        # Drop clients whose newest request has left the window
        stale = [key for key, stamps in self._requests.items() if not stamps or now - stamps[-1] >= self.window_seconds]
        for key in stale:
            del self._requests[key]
        self._last_prune = now

    def hit(self, key: str) -> None:
        if not self.enabled:
            return

        now = self._clock()
        with self._lock:
            if now - self._last_prune >= self.window_seconds:
                self._prune(now)

            # Filter out requests older than the window
            recent = [t for t in self._requests.get(key, []) if now - t < self.window_seconds]

            if len(recent) >= self.max_requests:
                self._requests[key] = recent
                raise RateLimited()

            recent.append(now)
            self._requests[key] = recent

    def check(self, request: Request) -> None:
        """FastAPI dependency: enforces the limit for the calling client."""
        client_ip = request.client.host if request.client else "unknown"
        self.hit(client_ip)
