# autosend/models/api/decision_response.py
"""
Auto-send API response models.
Used by routes for output formatting.
"""

from pydantic import BaseModel, Field

from autosend.models.domain.decision_domain import (
    AutoSendDecision,
    DeltaResult,
    HardBlockResult,
    RateLimitStatus,
)


class GateResultResponse(BaseModel):
    id: str = Field(..., description="Gate identifier")
    passed: bool = Field(..., description="Did the gate pass")
    detail: str = Field(..., description="Human-readable explanation")


class HardBlockResponse(BaseModel):
    blocked: bool = Field(..., description="Is auto-send hard-blocked for this contact")
    reason: str | None = Field(None, description="VIP_MANUAL_OVERRIDE or NEGATIVE_SENTIMENT_DETECTED")

    @classmethod
    def from_domain(cls, result: HardBlockResult) -> "HardBlockResponse":
        return cls(blocked=result.blocked, reason=str(result.reason) if result.reason else None)


class RateLimitStatusResponse(BaseModel):
    allowed: bool = Field(..., description="Would another auto-send be allowed")
    used: int = Field(..., description="Auto-sends used in the current window")
    limit: int = Field(..., description="Auto-sends allowed per window")
    remaining: int = Field(..., description="Auto-sends left in the current window")
    reset_at: float = Field(..., description="Window reset time (epoch seconds)")

    @classmethod
    def from_domain(cls, status: RateLimitStatus) -> "RateLimitStatusResponse":
        return cls(
            allowed=status.allowed,
            used=status.entry.count,
            limit=status.limit,
            remaining=status.remaining,
            reset_at=status.entry.reset_at,
        )


class DecisionResponse(BaseModel):
    auto_send: bool = Field(..., description="Dispatch without human review")
    route: str = Field(..., description="auto_send or human_review")
    reason: str | None = Field(None, description="Why the draft was routed to a human")
    hard_block: HardBlockResponse
    passed: bool = Field(False, description="Gate evaluation outcome, including rate limit")
    risk_reason: str | None = Field(None, description="First failing gate detail or rate limit")
    gate_results: list[GateResultResponse] = Field(default_factory=list)
    rate_limit: RateLimitStatusResponse | None = None

    @classmethod
    def from_domain(cls, decision: AutoSendDecision) -> "DecisionResponse":
        outcome = decision.outcome
        return cls(
            auto_send=decision.auto_send,
            route=decision.route,
            reason=decision.reason,
            hard_block=HardBlockResponse.from_domain(decision.hard_block),
            passed=outcome.passed if outcome else False,
            risk_reason=outcome.risk_reason if outcome else None,
            gate_results=[
                GateResultResponse(id=result.id, passed=result.passed, detail=result.detail)
                for result in (outcome.gate_results if outcome else ())
            ],
            rate_limit=(
                RateLimitStatusResponse.from_domain(decision.rate_limit)
                if decision.rate_limit
                else None
            ),
        )


class DeltaFeedbackResponse(BaseModel):
    ratio: float = Field(..., ge=0.0, le=1.0, description="Normalized edit distance")
    distance: int = Field(..., ge=0, description="Raw edit distance")
    classification: str = Field(..., description="negligible, partial or full_rewrite")

    @classmethod
    def from_domain(cls, result: DeltaResult) -> "DeltaFeedbackResponse":
        return cls(
            ratio=result.ratio,
            distance=result.distance,
            classification=str(result.classification),
        )
