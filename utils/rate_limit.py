"""
Fixed-window login throttling on top of the `limits` package.

One RateLimiter lives on the Flask app (app.extensions["login_limiter"]), so
limits are per process. Counters sit in limits' MemoryStorage, which expires
finished windows on its own.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter


@dataclass(frozen=True)
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float  # epoch seconds when the current window ends


class RateLimiter:
    def __init__(self, storage: Storage | None = None):
        self.storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    def check_rate_limit(self, limit: int, window: int, identifier: str) -> RateLimitResult:
        """Count one hit for `identifier` and report whether it is within `limit` per `window` seconds."""
        item = RateLimitItemPerSecond(limit, window)
        success = self._strategy.hit(item, identifier)
        stats = self._strategy.get_window_stats(item, identifier)
        return RateLimitResult(
            success=success,
            limit=limit,
            remaining=max(0, stats.remaining),
            reset=float(stats.reset_time),
        )

    @staticmethod
    def retry_after(result: RateLimitResult) -> int:
        return max(0, math.ceil(result.reset - time.time()))

    def reset(self) -> None:
        self.storage.reset()


def get_client_ip(request) -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    for header in ("X-Real-IP", "CF-Connecting-IP"):
        value = request.headers.get(header)
        if value:
            return value.strip()
    return request.remote_addr or "unknown"
