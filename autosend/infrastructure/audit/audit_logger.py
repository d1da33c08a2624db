"""
AuditLogger - forwards auto-send decisions to the audit trail.

Every decision (sent or routed to a human) and every delta feedback result
is recorded so a reviewer can reconstruct why a message did or did not go
out unattended.

Usage:
    from autosend.infrastructure.audit import audit_logger

    audit_logger.log_decision(user_id="user-123", decision=decision)

Design Principles:
- Write to structured logs first (searchable), then to the injected sink
  (the durable audit store is owned by an external collaborator)
- Never fail the decision if audit logging fails
- Records are plain JSON-serializable dicts
"""

from datetime import datetime, timezone
from typing import Any, Protocol

from autosend.infrastructure.observability.logging import get_logger
from autosend.models.domain.decision_domain import AutoSendDecision, DeltaResult

logger = get_logger(__name__)


class AuditSink(Protocol):
    def write(self, record: dict[str, Any]) -> None: ...


def decision_to_record(user_id: str, decision: AutoSendDecision) -> dict[str, Any]:
    """Flatten a decision into the audit row shape."""
    outcome = decision.outcome
    record: dict[str, Any] = {
        "user_id": user_id,
        "action": "autosend_decision",
        "route": decision.route,
        "auto_send": decision.auto_send,
        "reason": decision.reason,
        "hard_block": {
            "blocked": decision.hard_block.blocked,
            "reason": str(decision.hard_block.reason) if decision.hard_block.reason else None,
        },
        "gates": [],
        "risk_reason": None,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    if outcome is not None:
        record["gates"] = [
            {"id": result.id, "passed": result.passed, "detail": result.detail}
            for result in outcome.gate_results
        ]
        record["risk_reason"] = outcome.risk_reason
    if decision.rate_limit is not None:
        record["rate_limit"] = {
            "allowed": decision.rate_limit.allowed,
            "used": decision.rate_limit.entry.count,
            "limit": decision.rate_limit.limit,
            "reset_at": decision.rate_limit.entry.reset_at,
        }
    return record


class AuditLogger:
    """
    Centralized audit forwarding.

    Logs to:
    1. Structured logs (stdout) - real-time monitoring
    2. The injected AuditSink, if any - durable storage
    """

    def __init__(self, sink: AuditSink | None = None):
        self.sink = sink

    def _write(self, record: dict[str, Any]) -> bool:
        if self.sink is None:
            return True
        try:
            self.sink.write(record)
            return True
        except Exception as e:
            # NEVER fail the decision due to audit failure, but keep enough
            # context to recreate the row manually
            logger.error(
                "CRITICAL: Failed to write audit record",
                error=str(e),
                error_type=type(e).__name__,
                action=record.get("action"),
                user_id=record.get("user_id"),
                fallback_data=record,
            )
            return False

    def log_decision(self, user_id: str, decision: AutoSendDecision) -> bool:
        """
        Record an auto-send decision.

        Returns:
            True if forwarded successfully, False if the sink failed (never raises)
        """
        record = decision_to_record(user_id, decision)

        logger.info(
            "Audit event",
            audit_action=record["action"],
            user_id=user_id,
            route=record["route"],
            reason=record["reason"],
            gate_ids=[gate["id"] for gate in record["gates"] if not gate["passed"]],
        )
        return self._write(record)

    def log_delta_feedback(self, user_id: str, result: DeltaResult) -> bool:
        record = {
            "user_id": user_id,
            "action": "delta_feedback",
            "ratio": result.ratio,
            "distance": result.distance,
            "classification": str(result.classification),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        logger.info(
            "Audit event",
            audit_action=record["action"],
            user_id=user_id,
            classification=record["classification"],
        )
        return self._write(record)


audit_logger = AuditLogger()
