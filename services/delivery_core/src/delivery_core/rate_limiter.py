"""Sliding window rate limiters keyed by provider id."""

import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable

from redis import Redis

from delivery_core.config import RateLimitConfig

# KEYS[1] is the provider's window; ARGV is window_ms, limit, member.
# Scores are Redis server time in milliseconds.
_SLIDING_WINDOW_LUA = """
local t = redis.call('TIME')
local now_ms = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
local window_ms = tonumber(ARGV[1])

redis.call('ZREMRANGEBYSCORE', KEYS[1], 0, now_ms - window_ms)
if redis.call('ZCARD', KEYS[1]) >= tonumber(ARGV[2]) then
    return 0
end
redis.call('ZADD', KEYS[1], now_ms, ARGV[3])
redis.call('PEXPIRE', KEYS[1], window_ms)
return 1
"""


class RateLimiter(ABC):
    """Admits at most N sends per provider per window."""

    def __init__(self, config: RateLimitConfig) -> None:
        self._config = config

    @abstractmethod
    def acquire(self, provider_id: str) -> bool:
        """Take a slot for *provider_id* if one is free."""

    def wait(
        self, provider_id: str, cancel: threading.Event | None = None
    ) -> bool:
        """Block until a slot is acquired.

        Returns False if *cancel* was set while waiting.
        """
        interval = self._config.poll_interval_seconds
        while not self.acquire(provider_id):
            if cancel is None:
                time.sleep(interval)
            elif cancel.wait(interval):
                return False
        return True


class LocalRateLimiter(RateLimiter):
    """In-process limiter shared by the threads of one worker."""

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(config)
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, deque[float]] = {}

    def acquire(self, provider_id: str) -> bool:
        limit = self._config.limit_for_provider(provider_id)
        with self._lock:
            now = self._clock()
            window = self._windows.setdefault(provider_id, deque())
            cutoff = now - self._config.window_seconds
            while window and window[0] <= cutoff:
                window.popleft()
            if len(window) >= limit:
                return False
            window.append(now)
            return True


class RedisRateLimiter(RateLimiter):
    """Limiter shared by every worker process through one Redis.

    Each admitted send is a sorted-set member scored in milliseconds.
    """

    def __init__(
        self, redis_client: Redis, config: RateLimitConfig, prefix: str = "ratelimit"
    ) -> None:
        super().__init__(config)
        self._prefix = prefix
        self._window = redis_client.register_script(_SLIDING_WINDOW_LUA)

    def key(self, provider_id: str) -> str:
        return f"{self._prefix}:{provider_id}"

    def acquire(self, provider_id: str) -> bool:
        admitted = self._window(
            keys=[self.key(provider_id)],
            args=[
                self._config.window_seconds * 1000,
                self._config.limit_for_provider(provider_id),
                uuid.uuid4().hex,
            ],
        )
        return admitted == 1
