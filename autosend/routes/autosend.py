"""
Auto-send API Routes
HTTP endpoints exposing the auto-send decision engine to send orchestration.

/evaluate is fail-closed: an unparseable context is not a 422, it is a
decision to route the draft to a human.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from autosend.auth.verify import auth_dependency
from autosend.infrastructure.observability.logging import get_logger
from autosend.models.api.decision_request import DeltaFeedbackRequest, HardBlockRequest
from autosend.models.api.decision_response import (
    DecisionResponse,
    DeltaFeedbackResponse,
    HardBlockResponse,
    RateLimitStatusResponse,
)
from autosend.services.autosend import (
    AutoSendDecisionService,
    DeltaFeedbackService,
    build_decision_service,
)
from autosend.services.redis_client import redis_client

logger = get_logger(__name__)

router = APIRouter(prefix="/autosend", tags=["autosend"])

_decision_service: AutoSendDecisionService | None = None
_feedback_service: DeltaFeedbackService | None = None


def get_decision_service() -> AutoSendDecisionService:
    global _decision_service
    if _decision_service is None:
        _decision_service = build_decision_service(
            redis_client=redis_client.client if redis_client.enabled else None
        )
    return _decision_service


def get_feedback_service() -> DeltaFeedbackService:
    global _feedback_service
    if _feedback_service is None:
        _feedback_service = DeltaFeedbackService()
    return _feedback_service


def _user_id(claims: dict) -> str:
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id


@router.post("/evaluate", response_model=DecisionResponse)
def evaluate_draft(
    payload: dict[str, Any] = Body(...),
    claims: dict = Depends(auth_dependency),
    service: AutoSendDecisionService = Depends(get_decision_service),
):
    """Decide whether a drafted reply may be dispatched without review."""
    user_id = _user_id(claims)
    draft_text = payload.get("draft_text", payload.get("draftText"))
    if draft_text is not None and not isinstance(draft_text, str):
        draft_text = None

    decision = service.decide_from_payload(user_id, draft_text, payload)
    return DecisionResponse.from_domain(decision)


@router.post("/hard-block", response_model=HardBlockResponse)
def check_contact_hard_block(
    request: HardBlockRequest,
    claims: dict = Depends(auth_dependency),
    service: AutoSendDecisionService = Depends(get_decision_service),
):
    """Check whether a contact is hard-blocked from auto-send."""
    user_id = _user_id(claims)
    result = service.hard_block_checker.check(request.contact.to_domain(), user_id=user_id)
    return HardBlockResponse.from_domain(result)


@router.get("/rate-limit", response_model=RateLimitStatusResponse)
def get_rate_limit_status(
    claims: dict = Depends(auth_dependency),
    service: AutoSendDecisionService = Depends(get_decision_service),
):
    """Current auto-send window for the authenticated user (does not consume quota)."""
    user_id = _user_id(claims)
    return RateLimitStatusResponse.from_domain(service.rate_limiter.status(user_id))


@router.post("/feedback", response_model=DeltaFeedbackResponse)
def submit_delta_feedback(
    request: DeltaFeedbackRequest,
    claims: dict = Depends(auth_dependency),
    service: DeltaFeedbackService = Depends(get_feedback_service),
):
    """Measure how much the user changed an AI draft before sending it."""
    user_id = _user_id(claims)

    result = service.process(user_id, request.ai_draft, request.human_final)
    if result is None:
        # Sent unchanged: nothing to forward, still report the (zero) delta
        result = service.analyze(request.ai_draft, request.human_final)

    service.audit.log_delta_feedback(user_id, result)
    return DeltaFeedbackResponse.from_domain(result)
