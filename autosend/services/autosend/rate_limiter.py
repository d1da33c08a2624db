"""
Auto-send Rate Limiter - bounds how many replies a user's assistant may
dispatch without review.

Fixed window: at most `max_sends` allowed operations per `window_seconds`
per user (defaults: 10 per hour). Windows reset lazily on access, there is
no background timer.

Failure behaviour is fail-closed: if the store cannot be read or updated,
the send is treated as rate limited and routed to a human.

Usage:
    from autosend.services.autosend.rate_limiter import build_rate_limiter

    limiter = build_rate_limiter()
    if not limiter.check_and_consume("user-123"):
        # route to human review
"""

import time
from collections.abc import Callable

from autosend.config import settings
from autosend.infrastructure.observability.logging import get_logger
from autosend.models.domain.decision_domain import RateLimitEntry, RateLimitStatus
from autosend.services.autosend.rate_limit_store import (
    InMemoryRateLimitStore,
    RateLimitStore,
    RateLimitStoreError,
    RedisRateLimitStore,
)

logger = get_logger(__name__)

DEFAULT_MAX_SENDS = 10
DEFAULT_WINDOW_SECONDS = 60 * 60


class AutoSendRateLimiter:
    """Per-user fixed-window limiter over an injected store."""

    def __init__(
        self,
        store: RateLimitStore | None = None,
        max_sends: int = DEFAULT_MAX_SENDS,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            store: Counter store (None = new in-memory store)
            max_sends: Allowed auto-sends per window
            window_seconds: Window length in seconds
            clock: Returns current epoch seconds; injectable for tests
        """
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.max_sends = max_sends
        self.window_seconds = window_seconds
        self.clock = clock

    def _key(self, user_id: str) -> str:
        return f"user:{user_id}"

    def _denied_status(self, user_id: str, now: float) -> RateLimitStatus:
        entry = RateLimitEntry(
            user_key=self._key(user_id), count=self.max_sends, reset_at=now + self.window_seconds
        )
        return RateLimitStatus(allowed=False, entry=entry, limit=self.max_sends)

    def consume(self, user_id: str) -> RateLimitStatus:
        """Check and consume one auto-send for the user, returning full status."""
        now = self.clock()
        try:
            allowed, entry = self.store.consume(
                self._key(user_id), self.max_sends, self.window_seconds, now
            )
        except RateLimitStoreError:
            logger.error("Rate limit store unavailable, failing closed", user_id=user_id)
            return self._denied_status(user_id, now)

        if not allowed:
            logger.warning(
                "Auto-send rate limit exceeded",
                user_id=user_id,
                used=entry.count,
                limit=self.max_sends,
                reset_at=entry.reset_at,
            )
        return RateLimitStatus(allowed=allowed, entry=entry, limit=self.max_sends)

    def check_and_consume(self, user_id: str) -> bool:
        return self.consume(user_id).allowed

    def status(self, user_id: str) -> RateLimitStatus:
        """Current window status without consuming quota."""
        now = self.clock()
        try:
            allowed, entry = self.store.peek(
                self._key(user_id), self.max_sends, self.window_seconds, now
            )
        except RateLimitStoreError:
            logger.error("Rate limit store unavailable, failing closed", user_id=user_id)
            return self._denied_status(user_id, now)
        return RateLimitStatus(allowed=allowed, entry=entry, limit=self.max_sends)


def build_rate_limiter(redis_client=None) -> AutoSendRateLimiter:
    """
    Build the limiter from settings.

    The "redis" backend needs a client; without one it falls back to the
    in-memory store and logs a warning.
    """
    config = settings.get_rate_limit_config()

    if config["backend"] == "redis":
        if redis_client is not None:
            store: RateLimitStore = RedisRateLimitStore(redis_client)
        else:
            logger.warning("Redis rate limit backend configured without a client, using memory")
            store = InMemoryRateLimitStore()
    else:
        store = InMemoryRateLimitStore()

    return AutoSendRateLimiter(
        store=store,
        max_sends=config["max_sends"],
        window_seconds=config["window_seconds"],
    )
