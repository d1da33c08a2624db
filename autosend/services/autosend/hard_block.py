"""
VIP / sentiment hard-block.

Checked independently of (and ahead of) the ten gates. A block here is
dispositive: the orchestrator routes to a human regardless of gate outcomes.
"""

import math

from autosend.config import settings
from autosend.infrastructure.observability.logging import get_logger
from autosend.models.domain.decision_domain import Contact, HardBlockReason, HardBlockResult

logger = get_logger(__name__)

SENTIMENT_FLOOR = 0.30


def check_hard_block(contact: Contact, sentiment_floor: float = SENTIMENT_FLOOR) -> HardBlockResult:
    """
    VIP takes priority over sentiment. Sentiment blocks strictly below the
    floor; a missing, non-numeric or NaN score is treated as negative.
    """
    if contact.is_vip is not False:
        return HardBlockResult(blocked=True, reason=HardBlockReason.VIP_MANUAL_OVERRIDE)

    score = contact.sentiment_score
    if (
        not isinstance(score, int | float)
        or isinstance(score, bool)
        or not math.isfinite(score)
        or score < sentiment_floor
    ):
        return HardBlockResult(blocked=True, reason=HardBlockReason.NEGATIVE_SENTIMENT_DETECTED)

    return HardBlockResult(blocked=False)


class HardBlockChecker:
    """Settings-aware wrapper used by the decision service."""

    def __init__(self, sentiment_floor: float | None = None):
        self.sentiment_floor = (
            settings.AUTOSEND_SENTIMENT_FLOOR if sentiment_floor is None else sentiment_floor
        )

    def check(self, contact: Contact, user_id: str | None = None) -> HardBlockResult:
        result = check_hard_block(contact, self.sentiment_floor)
        if result.blocked:
            logger.warning(
                "Auto-send hard-blocked",
                user_id=user_id,
                hard_block_reason=str(result.reason),
                sentiment_score=contact.sentiment_score,
            )
        return result
