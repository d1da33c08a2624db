"""
Autonomous-send decision engine.

This package contains:
- Policy gates (ten ordered checks over a draft and its context)
- VIP / sentiment hard-block
- Per-user auto-send rate limiting
- Delta feedback analysis of human edits
- The decision service combining all of the above
"""

from autosend.services.autosend.decision_service import (
    AutoSendDecisionService,
    build_decision_service,
)
from autosend.services.autosend.delta_feedback import DeltaFeedbackService, analyze, edit_distance
from autosend.services.autosend.forbidden_topics import ForbiddenTopicScanner, TopicMatcher
from autosend.services.autosend.gates import DEFAULT_GATES, Gate, GateEvaluator
from autosend.services.autosend.hard_block import HardBlockChecker, check_hard_block
from autosend.services.autosend.rate_limit_store import (
    InMemoryRateLimitStore,
    RateLimitStoreError,
    RedisRateLimitStore,
)
from autosend.services.autosend.rate_limiter import AutoSendRateLimiter, build_rate_limiter

__all__ = [
    "AutoSendDecisionService",
    "build_decision_service",
    "DeltaFeedbackService",
    "analyze",
    "edit_distance",
    "ForbiddenTopicScanner",
    "TopicMatcher",
    "DEFAULT_GATES",
    "Gate",
    "GateEvaluator",
    "HardBlockChecker",
    "check_hard_block",
    "InMemoryRateLimitStore",
    "RateLimitStoreError",
    "RedisRateLimitStore",
    "AutoSendRateLimiter",
    "build_rate_limiter",
]
