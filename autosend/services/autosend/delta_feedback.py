"""
Delta Feedback Analyzer - how much did the human change the AI draft?

After a user edits a draft and sends it, the normalized edit distance
between the draft and the final text tells the tone-learning pipeline what
to do with the sample:

    ratio < 0.05   negligible     typo fixes, ignored
    ratio > 0.80   full_rewrite   candidate exemplar / tone profile update
    otherwise      partial        recorded for analytics

ratio = levenshtein(draft, final) / len(longer text); two empty texts give 0.
"""

from typing import Any, Protocol

from autosend.config import settings
from autosend.infrastructure.audit import AuditLogger, audit_logger
from autosend.infrastructure.observability.logging import get_logger
from autosend.models.domain.decision_domain import DeltaClassification, DeltaResult

logger = get_logger(__name__)

NEGLIGIBLE_BELOW = 0.05
FULL_REWRITE_ABOVE = 0.80


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance with unit costs.

    Single-row dynamic programming over the shorter string, so memory is
    O(min(len(a), len(b))).
    """
    if a == b:
        return 0
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if not shorter:
        return len(longer)

    previous = list(range(len(shorter) + 1))
    for i, long_char in enumerate(longer, start=1):
        current = [i] + [0] * len(shorter)
        for j, short_char in enumerate(shorter, start=1):
            substitution = previous[j - 1] + (long_char != short_char)
            current[j] = min(previous[j] + 1, current[j - 1] + 1, substitution)
        previous = current
    return previous[-1]


def classify_ratio(
    ratio: float,
    negligible_below: float = NEGLIGIBLE_BELOW,
    full_rewrite_above: float = FULL_REWRITE_ABOVE,
) -> DeltaClassification:
    if ratio < negligible_below:
        return DeltaClassification.NEGLIGIBLE
    if ratio > full_rewrite_above:
        return DeltaClassification.FULL_REWRITE
    return DeltaClassification.PARTIAL


def analyze(
    ai_draft: str,
    human_final: str,
    negligible_below: float = NEGLIGIBLE_BELOW,
    full_rewrite_above: float = FULL_REWRITE_ABOVE,
) -> DeltaResult:
    ai_draft = ai_draft or ""
    human_final = human_final or ""

    distance = edit_distance(ai_draft, human_final)
    longest = max(len(ai_draft), len(human_final))
    ratio = distance / longest if longest else 0.0

    return DeltaResult(
        ratio=ratio,
        classification=classify_ratio(ratio, negligible_below, full_rewrite_above),
        distance=distance,
    )


class FeedbackSink(Protocol):
    """External tone-learning pipeline."""

    def submit(self, user_id: str, result: DeltaResult, ai_draft: str, human_final: str) -> None: ...


class DeltaFeedbackService:
    """
    Analyzes edited drafts and forwards non-negligible results downstream.

    Sink failures are logged and swallowed: feedback is best effort and
    must never fail the send that triggered it.
    """

    def __init__(
        self,
        sink: FeedbackSink | None = None,
        audit: AuditLogger | None = None,
        negligible_below: float | None = None,
        full_rewrite_above: float | None = None,
    ):
        thresholds = settings.get_delta_thresholds()
        self.sink = sink
        self.audit = audit or audit_logger
        self.negligible_below = (
            thresholds["negligible_below"] if negligible_below is None else negligible_below
        )
        self.full_rewrite_above = (
            thresholds["full_rewrite_above"] if full_rewrite_above is None else full_rewrite_above
        )

    def analyze(self, ai_draft: str, human_final: str) -> DeltaResult:
        return analyze(ai_draft, human_final, self.negligible_below, self.full_rewrite_above)

    def process(self, user_id: str, ai_draft: str | None, human_final: str) -> DeltaResult | None:
        """
        Analyze an edited draft and forward it to the learning pipeline.

        Returns None when there was no AI draft or it was sent unchanged.
        """
        if not ai_draft or ai_draft == human_final:
            return None

        result = self.analyze(ai_draft, human_final)
        log_data: dict[str, Any] = {
            "user_id": user_id,
            "ratio": round(result.ratio, 4),
            "distance": result.distance,
            "classification": str(result.classification),
        }

        if result.classification == DeltaClassification.NEGLIGIBLE:
            logger.debug("Delta feedback negligible, skipping", **log_data)
            return result

        if result.classification == DeltaClassification.FULL_REWRITE:
            logger.info("Delta feedback: complete rewrite, queuing exemplar update", **log_data)
        else:
            logger.info("Delta feedback: partial edit recorded", **log_data)

        if self.sink is not None:
            try:
                self.sink.submit(user_id, result, ai_draft, human_final)
            except Exception as e:
                logger.error(
                    "Failed to forward delta feedback",
                    error=str(e),
                    error_type=type(e).__name__,
                    **log_data,
                )

        return result
