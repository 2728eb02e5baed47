"""
Shared fixed-window rate limiter.

One RateLimiter exists per quota class (see settings.RATE_LIMIT_POLICIES).
The RateLimiterRegistry is built once per process, attached to app.state and
handed to request handlers through a dependency. It also owns the background
sweep that reclaims expired buckets.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from steadyday.core.config import RateLimitPolicy
from steadyday.core.metrics import (
    rate_limiter_buckets,
    rate_limiter_evictions_total,
    rate_limiter_swept_total,
    rate_limited_requests_total,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BUCKETS = 10_000
DEFAULT_EVICTION_HEADROOM = 1_000

# Keys deleted per lock acquisition during a sweep
SWEEP_BATCH_SIZE = 500


@dataclass
class RateBucket:
    count: int
    reset_at: float


class RateLimiter:
    """Keyed fixed-window counter.

    `clock` returns monotonic seconds; it defaults to time.monotonic and is
    injectable for tests.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 20,
        *,
        max_buckets: int = DEFAULT_MAX_BUCKETS,
        eviction_headroom: int = DEFAULT_EVICTION_HEADROOM,
        fail_closed: bool = False,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if max_buckets < 1:
            raise ValueError("max_buckets must be at least 1")
        self.window_seconds = float(window_seconds)
        self.max_requests = int(max_requests)
        self.max_buckets = int(max_buckets)
        self.eviction_headroom = max(0, min(int(eviction_headroom), self.max_buckets - 1))
        self.fail_closed = fail_closed
        self.name = name
        self._clock = clock
        # dict preserves insertion order, which doubles as approximate expiry order
        self._buckets: Dict[str, RateBucket] = {}
        self._lock = threading.Lock()

    def is_limited(self, key: Optional[str]) -> bool:
        """Count one request for `key`; True means the request must be rejected."""
        if not key:
            if self.fail_closed:
                rate_limited_requests_total.labels(policy=self.name).inc()
            return self.fail_closed

        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)

            if bucket is None or now > bucket.reset_at:
                if bucket is not None:
                    # re-insert at the tail so insertion order keeps tracking window start
                    del self._buckets[key]
                self._cap_size()
                self._buckets[key] = RateBucket(count=1, reset_at=now + self.window_seconds)
                return False

            bucket.count += 1
            limited = bucket.count > self.max_requests

        if limited:
            rate_limited_requests_total.labels(policy=self.name).inc()
        return limited

    def get_remaining(self, key: str) -> int:
        """Requests left for `key` in its current window."""
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or self._clock() > bucket.reset_at:
                return self.max_requests
            return max(0, self.max_requests - bucket.count)

    def bucket_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def sweep_expired(self) -> int:
        """Remove buckets whose window has closed. Returns the number removed.

        Works on a snapshot and deletes in short locked batches so request
        handlers are never held behind a full table scan.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, bucket in self._buckets.items() if now > bucket.reset_at]

        removed = 0
        for start in range(0, len(expired), SWEEP_BATCH_SIZE):
            with self._lock:
                now = self._clock()
                for key in expired[start:start + SWEEP_BATCH_SIZE]:
                    bucket = self._buckets.get(key)
                    # the key may have started a fresh window since the snapshot
                    if bucket is not None and now > bucket.reset_at:
                        del self._buckets[key]
                        removed += 1

        if removed:
            rate_limiter_swept_total.labels(policy=self.name).inc(removed)
        if removed > 100:
            logger.info(f"Rate limiter '{self.name}' cleanup: removed {removed} expired buckets")
        rate_limiter_buckets.labels(policy=self.name).set(self.bucket_count())
        return removed

    def _cap_size(self) -> None:
        # caller holds self._lock
        size = len(self._buckets)
        if size < self.max_buckets:
            return
        to_remove = min(size, size - self.max_buckets + 1 + self.eviction_headroom)
        for key in list(self._buckets.keys())[:to_remove]:
            del self._buckets[key]
        rate_limiter_evictions_total.labels(policy=self.name).inc(to_remove)
        logger.warning(f"Rate limiter '{self.name}': capped table size, evicted {to_remove} entries")


class RateLimiterRegistry:
    """Named limiters, one per quota class, plus their background sweep."""

    def __init__(
        self,
        policies: Mapping[str, RateLimitPolicy],
        *,
        max_buckets: int = DEFAULT_MAX_BUCKETS,
        eviction_headroom: int = DEFAULT_EVICTION_HEADROOM,
        fail_closed: bool = False,
        sweep_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sweep_interval_seconds = float(sweep_interval_seconds)
        self._limiters: Dict[str, RateLimiter] = {
            name: RateLimiter(
                policy.window_seconds,
                policy.max_requests,
                max_buckets=max_buckets,
                eviction_headroom=eviction_headroom,
                fail_closed=fail_closed,
                clock=clock,
                name=name,
            )
            for name, policy in policies.items()
        }
        self._sweep_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "RateLimiterRegistry":
        return cls(
            settings.RATE_LIMIT_POLICIES,
            max_buckets=settings.RATE_LIMIT_MAX_BUCKETS,
            eviction_headroom=settings.RATE_LIMIT_EVICTION_HEADROOM,
            fail_closed=settings.RATE_LIMIT_FAIL_CLOSED,
            sweep_interval_seconds=settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS,
            **kwargs,
        )

    def get(self, name: str) -> RateLimiter:
        try:
            return self._limiters[name]
        except KeyError:
            raise KeyError(f"No rate limit policy named '{name}'") from None

    def names(self) -> List[str]:
        return list(self._limiters.keys())

    def sweep_expired(self) -> int:
        return sum(limiter.sweep_expired() for limiter in self._limiters.values())

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop"""
        if self.sweeping:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="rate-limiter-sweep")
        logger.info(f"Rate limiter sweep started (every {self.sweep_interval_seconds:.0f}s)")

    async def stop_sweeper(self) -> None:
        """Stop the periodic sweep; safe to call more than once"""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Rate limiter sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                # run off the event loop so request handling is never stalled
                await asyncio.to_thread(self.sweep_expired)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Rate limiter sweep failed: {e}")
