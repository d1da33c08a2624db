"""
Auto-send Decision Service - the single allow/deny decision for a draft.

Combines the three checks in a fixed precedence:

1. VIP / sentiment hard-block (dispositive, checked first)
2. All ten policy gates (always evaluated, for the audit trail)
3. The per-user rate limiter (consumed according to the quota policy)

Quota policy:
    ON_ATTEMPT  every decision that is not hard-blocked consumes quota,
                whatever the gates say
    ON_SEND     quota is consumed only when the hard block clears and all
                gates pass; otherwise the window is only inspected

A hard-blocked decision never consumes quota under either policy.

Any failure to assemble the context (missing collaborator data, malformed
payload) routes to a human with reason CONTEXT_UNAVAILABLE instead of
raising.
"""

from typing import Any

from pydantic import ValidationError

from autosend.config import settings
from autosend.infrastructure.audit import AuditLogger, audit_logger
from autosend.infrastructure.observability.logging import get_logger
from autosend.models.api.decision_request import DecisionContextPayload
from autosend.models.domain.decision_domain import (
    CONTEXT_UNAVAILABLE,
    AutoSendDecision,
    DecisionContext,
    HardBlockResult,
    QuotaPolicy,
)
from autosend.services.autosend.forbidden_topics import build_scanner
from autosend.services.autosend.gates import GateEvaluator, build_default_gates
from autosend.services.autosend.hard_block import HardBlockChecker
from autosend.services.autosend.rate_limiter import AutoSendRateLimiter, build_rate_limiter

logger = get_logger(__name__)


class AutoSendDecisionService:
    def __init__(
        self,
        evaluator: GateEvaluator | None = None,
        rate_limiter: AutoSendRateLimiter | None = None,
        hard_block_checker: HardBlockChecker | None = None,
        audit: AuditLogger | None = None,
        quota_policy: QuotaPolicy | str = QuotaPolicy.ON_ATTEMPT,
    ):
        self.evaluator = evaluator or GateEvaluator()
        self.rate_limiter = rate_limiter or AutoSendRateLimiter()
        self.hard_block_checker = hard_block_checker or HardBlockChecker()
        self.audit = audit or audit_logger
        self.quota_policy = QuotaPolicy(quota_policy)

    def decide(self, user_id: str, draft_text: str, context: DecisionContext) -> AutoSendDecision:
        """
        Decide whether `draft_text` may be sent without human review.

        Args:
            user_id: Owner of the quota
            draft_text: AI-drafted reply
            context: Already-fetched settings, contact and supervisor verdict

        Returns:
            AutoSendDecision (never raises for input content)
        """
        hard_block = self.hard_block_checker.check(context.contact, user_id=user_id)
        gate_results = self.evaluator.run_gates(draft_text, context)
        gates_passed = all(result.passed for result in gate_results)

        consume = not hard_block.blocked and (
            self.quota_policy == QuotaPolicy.ON_ATTEMPT or gates_passed
        )
        if consume:
            rate_status = self.rate_limiter.consume(user_id)
        else:
            rate_status = self.rate_limiter.status(user_id)

        outcome = self.evaluator.fold(gate_results, rate_limit_allowed=rate_status.allowed)

        if hard_block.blocked:
            reason = str(hard_block.reason)
        else:
            reason = outcome.risk_reason

        decision = AutoSendDecision(
            auto_send=not hard_block.blocked and outcome.passed,
            reason=None if (not hard_block.blocked and outcome.passed) else reason,
            hard_block=hard_block,
            outcome=outcome,
            rate_limit=rate_status,
        )

        logger.info(
            "Auto-send decision",
            user_id=user_id,
            route=decision.route,
            reason=decision.reason,
            gate_ids=outcome.failed_gates,
            quota_consumed=consume,
            quota_policy=str(self.quota_policy),
        )
        self.audit.log_decision(user_id, decision)
        return decision

    def route_to_human(self, user_id: str, detail: str) -> AutoSendDecision:
        """Decision used when the context could not be assembled."""
        decision = AutoSendDecision(
            auto_send=False,
            reason=CONTEXT_UNAVAILABLE,
            hard_block=HardBlockResult(blocked=False),
            outcome=None,
        )
        logger.warning("Auto-send context unavailable, routing to human", user_id=user_id, detail=detail)
        self.audit.log_decision(user_id, decision)
        return decision

    def decide_from_payload(
        self,
        user_id: str,
        draft_text: str | None,
        payload: dict[str, Any] | None,
    ) -> AutoSendDecision:
        """
        Parse raw collaborator data and decide.

        `payload` holds user_settings, channel_settings, contact, supervisor
        and current_hour. A None payload or any of those missing/invalid
        routes to a human.
        """
        if not payload or draft_text is None:
            return self.route_to_human(user_id, "missing draft or context")

        try:
            context = DecisionContextPayload.model_validate(payload).to_domain()
        except ValidationError as e:
            fields = [".".join(str(loc) for loc in error["loc"]) for error in e.errors()]
            return self.route_to_human(user_id, f"invalid context fields: {', '.join(fields)}")

        return self.decide(user_id, draft_text, context)


def build_decision_service(redis_client=None, audit: AuditLogger | None = None) -> AutoSendDecisionService:
    """Assemble the service from settings."""
    scanner = build_scanner(settings.AUTOSEND_FORBIDDEN_PATTERNS)
    return AutoSendDecisionService(
        evaluator=GateEvaluator(build_default_gates(scanner)),
        rate_limiter=build_rate_limiter(redis_client),
        hard_block_checker=HardBlockChecker(settings.AUTOSEND_SENTIMENT_FLOOR),
        audit=audit,
        quota_policy=settings.AUTOSEND_QUOTA_POLICY.lower(),
    )
