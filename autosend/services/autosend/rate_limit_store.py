"""
Rate limit stores - where the per-user auto-send counters live.

Two implementations of the same fixed-window algorithm:

- InMemoryRateLimitStore: process-local dict guarded by one lock per user
  key. Different users never wait on each other. Expired windows are swept
  periodically. State is lost on restart and is not shared between
  instances.
- RedisRateLimitStore: one hash per user key updated by an atomic Lua
  script, so several service instances share the same quota.

Algorithm (per key):
    entry missing or now >= reset_at  -> entry = {count: 0, reset_at: now + window}
    count < limit                     -> count += 1, allowed
    otherwise                         -> denied, count unchanged
"""

import threading
from contextlib import contextmanager
from typing import Protocol

from autosend.infrastructure.observability.logging import get_logger
from autosend.models.domain.decision_domain import RateLimitEntry

logger = get_logger(__name__)


class RateLimitStoreError(Exception):
    """Raised when a rate limit store cannot read or update a counter."""

    def __init__(self, message: str, key: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.key = key
        self.recoverable = recoverable


class RateLimitStore(Protocol):
    def consume(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> tuple[bool, RateLimitEntry]:
        """Atomically check and, if under the limit, increment the counter."""
        ...

    def peek(self, key: str, limit: int, window_seconds: int, now: float) -> tuple[bool, RateLimitEntry]:
        """Report whether a consume would be allowed, without changing state."""
        ...


class InMemoryRateLimitStore:
    """
    Mutex-guarded in-process counter map.

    Thread Safety:
        The read-modify-write for a key runs under that key's lock. The
        registry lock is held while looking up, creating or evicting key
        locks, never while a caller waits on a key lock.

    Expired windows are swept at most once per `sweep_interval` seconds
    (driven by the `now` callers pass in). A key is evicted together with
    its lock only when its window has elapsed and nobody holds the lock, so
    per-user state stays bounded by the users active in the last window.
    """

    def __init__(self, sweep_interval: float = 300.0):
        self._entries: dict[str, RateLimitEntry] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self._next_sweep: float | None = None

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def _locked(self, key: str):
        while True:
            lock = self._lock_for(key)
            lock.acquire()
            with self._registry_lock:
                current = self._locks.get(key)
            if current is lock:
                break
            # Evicted between lookup and acquire; retry with the live lock
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def _maybe_evict(self, now: float) -> None:
        with self._registry_lock:
            if self._next_sweep is None:
                self._next_sweep = now + self.sweep_interval
                return
            if now < self._next_sweep:
                return
            self._next_sweep = now + self.sweep_interval

            evicted = 0
            for key, lock in list(self._locks.items()):
                if not lock.acquire(blocking=False):
                    continue
                try:
                    entry = self._entries.get(key)
                    if entry is None or now >= entry.reset_at:
                        self._entries.pop(key, None)
                        del self._locks[key]
                        evicted += 1
                finally:
                    lock.release()

        if evicted:
            logger.debug("Evicted expired rate limit windows", evicted=evicted, remaining=len(self._locks))

    def _current(self, key: str, window_seconds: int, now: float) -> RateLimitEntry:
        entry = self._entries.get(key)
        if entry is None or now >= entry.reset_at:
            entry = RateLimitEntry(user_key=key, count=0, reset_at=now + window_seconds)
        return entry

    def consume(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> tuple[bool, RateLimitEntry]:
        self._maybe_evict(now)
        with self._locked(key):
            entry = self._current(key, window_seconds, now)
            allowed = entry.count < limit
            if allowed:
                entry = RateLimitEntry(user_key=key, count=entry.count + 1, reset_at=entry.reset_at)
            self._entries[key] = entry
            return allowed, entry

    def peek(self, key: str, limit: int, window_seconds: int, now: float) -> tuple[bool, RateLimitEntry]:
        self._maybe_evict(now)
        with self._locked(key):
            entry = self._current(key, window_seconds, now)
            return entry.count < limit, entry

    def tracked_keys(self) -> int:
        """Number of user keys currently held in memory."""
        with self._registry_lock:
            return len(self._locks)


class RedisRateLimitStore:
    """
    Redis-backed fixed-window store shared across service instances.

    Thread Safety:
        Uses an atomic Lua script so concurrent consumers never push a key
        past its limit. Times are passed in milliseconds because Lua number
        replies are truncated to integers.
    """

    # Returns: {allowed (0 or 1), count, reset_at_ms}
    FIXED_WINDOW_LUA_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])
    local now_ms = tonumber(ARGV[3])
    local consume = tonumber(ARGV[4])

    local data = redis.call('HMGET', key, 'count', 'reset_at')
    local count = tonumber(data[1])
    local reset_at = tonumber(data[2])

    -- Start a new window when missing or elapsed
    if (not count) or (not reset_at) or now_ms >= reset_at then
        count = 0
        reset_at = now_ms + window_ms
    end

    if count >= limit then
        return {0, count, reset_at}
    end

    if consume == 1 then
        count = count + 1
        redis.call('HSET', key, 'count', count, 'reset_at', reset_at)
        redis.call('PEXPIREAT', key, reset_at)
    end

    return {1, count, reset_at}
    """

    def __init__(self, client, namespace: str = "autosend:ratelimit"):
        self.client = client
        self.namespace = namespace

    def _run(self, key: str, limit: int, window_seconds: int, now: float, consume: bool):
        redis_key = f"{self.namespace}:{key}"
        try:
            result = self.client.eval(
                self.FIXED_WINDOW_LUA_SCRIPT,
                1,  # Number of keys
                redis_key,  # KEYS[1]
                limit,  # ARGV[1]
                int(window_seconds * 1000),  # ARGV[2]
                int(now * 1000),  # ARGV[3]
                1 if consume else 0,  # ARGV[4]
            )
        except Exception as e:
            logger.error(
                "Rate limit store Redis error",
                error=str(e),
                error_type=type(e).__name__,
                key=key,
            )
            raise RateLimitStoreError(f"Redis rate limit update failed: {e}", key=key) from e

        allowed = bool(int(result[0]))
        entry = RateLimitEntry(user_key=key, count=int(result[1]), reset_at=int(result[2]) / 1000)
        return allowed, entry

    def consume(
        self, key: str, limit: int, window_seconds: int, now: float
    ) -> tuple[bool, RateLimitEntry]:
        return self._run(key, limit, window_seconds, now, consume=True)

    def peek(self, key: str, limit: int, window_seconds: int, now: float) -> tuple[bool, RateLimitEntry]:
        return self._run(key, limit, window_seconds, now, consume=False)
