"""
Gate Evaluator - ordered policy gates for autonomous sending.

Each gate is a pure predicate over (draft_text, DecisionContext) with an id
and a detail formatter. The evaluator runs every gate on every call, with no
short-circuit, so the audit trail always has one result per gate in a fixed
order, then folds the results together with the rate limiter verdict.

Gate order (default policy):
    G1  Feature Flag          user AND channel auto-send enabled
    G2  Confidence            supervisor score >= user threshold (inclusive)
    G3  Supervisor Safety     supervisor marked the draft safe to send
    G4  First-Touch           established contact (messages exist, not new)
    G5  Complexity            acknowledgement or confirmation only
    G6  Forbidden Topics      no matcher hit and supervisor found none
    G7  Scheduling Ambiguity  scheduling not flagged as ambiguous
    G8  No New Commitments    draft makes no new promises
    G9  Time Window           within working hours, or after-hours allowed
    G10 Attachment Request    sender did not ask for an attachment

Fail-closed: a gate only passes on the exact permissive value. Missing or
wrongly-typed fields (None, strings, ...) fail the gate, and a predicate
that raises is recorded as a failed gate instead of propagating.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from autosend.infrastructure.observability.logging import get_logger
from autosend.models.domain.decision_domain import (
    RATE_LIMIT_EXCEEDED,
    DecisionContext,
    EvaluationOutcome,
    GateResult,
    MessageType,
)
from autosend.services.autosend.forbidden_topics import ForbiddenTopicScanner, default_scanner

logger = get_logger(__name__)

SIMPLE_MESSAGE_TYPES = frozenset({MessageType.ACKNOWLEDGEMENT, MessageType.CONFIRMATION})

Predicate = Callable[[str, DecisionContext], bool]
DetailFormatter = Callable[[bool, str, DecisionContext], str]


@dataclass(frozen=True, slots=True)
class Gate:
    id: str
    predicate: Predicate
    detail: DetailFormatter

    def run(self, draft_text: str, context: DecisionContext) -> GateResult:
        try:
            passed = self.predicate(draft_text, context) is True
            detail = self.detail(passed, draft_text, context)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(
                "Gate evaluation failed, treating as blocked",
                gate_id=self.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return GateResult(
                id=self.id, passed=False, detail=f"Gate could not be evaluated: {type(e).__name__}"
            )
        return GateResult(id=self.id, passed=passed, detail=detail)


def _is_number(value) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_hour(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 23


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _feature_flag(draft_text: str, ctx: DecisionContext) -> bool:
    return ctx.user_settings.auto_send_enabled is True and ctx.channel_settings.auto_send_enabled is True


def _confidence(draft_text: str, ctx: DecisionContext) -> bool:
    score = ctx.supervisor.confidence_score
    threshold = ctx.user_settings.confidence_threshold
    if not (_is_number(score) and _is_number(threshold)):
        return False
    return score >= threshold


def _supervisor_safety(draft_text: str, ctx: DecisionContext) -> bool:
    return ctx.supervisor.safe_to_send is True


def _first_touch(draft_text: str, ctx: DecisionContext) -> bool:
    count = ctx.contact.message_count
    return isinstance(count, int) and count > 0 and ctx.contact.is_new is False


def _complexity(draft_text: str, ctx: DecisionContext) -> bool:
    return ctx.supervisor.message_type in SIMPLE_MESSAGE_TYPES


def _scheduling(draft_text: str, ctx: DecisionContext) -> bool:
    # True and None (unknown) both pass; anything else is treated as ambiguous
    return ctx.supervisor.is_scheduling_unambiguous is True or ctx.supervisor.is_scheduling_unambiguous is None


def _no_commitments(draft_text: str, ctx: DecisionContext) -> bool:
    return ctx.supervisor.contains_new_commitments is False


def _within_working_hours(ctx: DecisionContext) -> bool:
    settings = ctx.user_settings
    if not (
        _is_hour(ctx.current_hour)
        and _is_hour(settings.working_hours_start)
        and _is_hour(settings.working_hours_end)
    ):
        return False
    return settings.working_hours_start <= ctx.current_hour <= settings.working_hours_end


def _time_window(draft_text: str, ctx: DecisionContext) -> bool:
    return _within_working_hours(ctx) or ctx.user_settings.allow_after_hours is True


def _no_attachment_request(draft_text: str, ctx: DecisionContext) -> bool:
    return ctx.supervisor.sender_requested_attachment is False


# ---------------------------------------------------------------------------
# Detail formatters
# ---------------------------------------------------------------------------


def _confidence_detail(passed: bool, draft_text: str, ctx: DecisionContext) -> str:
    score = ctx.supervisor.confidence_score
    threshold = ctx.user_settings.confidence_threshold
    if not (_is_number(score) and _is_number(threshold)):
        return "Confidence score or threshold missing"
    return f"Score {score:.2f} {'>=' if passed else '<'} threshold {threshold:.2f}"


def _supervisor_detail(passed: bool, draft_text: str, ctx: DecisionContext) -> str:
    if ctx.supervisor.reasoning:
        return ctx.supervisor.reasoning
    return "Safe to send" if passed else "Supervisor flagged as unsafe"


def _time_window_detail(passed: bool, draft_text: str, ctx: DecisionContext) -> str:
    if _within_working_hours(ctx):
        return "Within working hours"
    if passed:
        return "After-hours sending allowed"
    return f"Outside hours ({ctx.current_hour}:00)"


def _fixed(passed_detail: str, failed_detail: str) -> DetailFormatter:
    def _format(passed: bool, draft_text: str, ctx: DecisionContext) -> str:
        return passed_detail if passed else failed_detail

    return _format


def _forbidden_topics_gate(scanner: ForbiddenTopicScanner) -> Gate:
    def _predicate(draft_text: str, ctx: DecisionContext) -> bool:
        return not scanner.scan(draft_text) and ctx.supervisor.has_forbidden_topics is False

    def _detail(passed: bool, draft_text: str, ctx: DecisionContext) -> str:
        if passed:
            return "No forbidden topics"
        found = list(ctx.supervisor.forbidden_topics_found or ()) + scanner.scan(draft_text)
        if not found:
            return "Matched: supervisor flag"
        return f"Matched: {', '.join(dict.fromkeys(found))}"

    return Gate("G6_FORBIDDEN_TOPICS", _predicate, _detail)


def build_default_gates(scanner: ForbiddenTopicScanner = default_scanner) -> tuple[Gate, ...]:
    """The ten-gate auto-send policy, in evaluation order."""
    return (
        Gate(
            "G1_FEATURE_FLAG",
            _feature_flag,
            _fixed("Auto-send enabled", "Auto-send disabled by user or channel settings"),
        ),
        Gate("G2_CONFIDENCE", _confidence, _confidence_detail),
        Gate("G3_SUPERVISOR_SAFETY", _supervisor_safety, _supervisor_detail),
        Gate(
            "G4_FIRST_TOUCH",
            _first_touch,
            _fixed("Established contact", "First-touch contact - human must respond first"),
        ),
        Gate(
            "G5_COMPLEXITY",
            _complexity,
            lambda passed, draft_text, ctx: f"Message type: {ctx.supervisor.message_type}",
        ),
        _forbidden_topics_gate(scanner),
        Gate(
            "G7_SCHEDULING_AMBIGUITY",
            _scheduling,
            _fixed("No scheduling ambiguity", "Scheduling details are ambiguous"),
        ),
        Gate(
            "G8_NO_NEW_COMMITMENTS",
            _no_commitments,
            _fixed("No new commitments", "Draft introduces new commitments not in context"),
        ),
        Gate("G9_TIME_WINDOW", _time_window, _time_window_detail),
        Gate(
            "G10_ATTACHMENT_REQUEST",
            _no_attachment_request,
            _fixed("No attachment requested", "Sender requested an attachment that cannot be provided"),
        ),
    )


DEFAULT_GATES = build_default_gates()


class GateEvaluator:
    """
    Stateless evaluator over an ordered gate list.

    The rate limiter is not owned here: callers pass its verdict in, so the
    evaluator stays a pure function of its inputs.
    """

    def __init__(self, gates: Iterable[Gate] = DEFAULT_GATES):
        self.gates: tuple[Gate, ...] = tuple(gates)
        ids = [gate.id for gate in self.gates]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate gate ids: {ids}")

    def run_gates(self, draft_text: str, context: DecisionContext) -> tuple[GateResult, ...]:
        """Run every gate, in order, without short-circuiting."""
        results = tuple(gate.run(draft_text, context) for gate in self.gates)
        assert len(results) == len(self.gates), "every gate must yield exactly one result"
        return results

    @staticmethod
    def fold(results: Sequence[GateResult], rate_limit_allowed: bool = True) -> EvaluationOutcome:
        """
        Combine gate results and the rate limiter verdict.

        RATE_LIMIT_EXCEEDED takes precedence as the risk reason; otherwise the
        first failed gate's detail is reported.
        """
        all_passed = all(result.passed for result in results)
        first_failed = next((result for result in results if not result.passed), None)

        if not rate_limit_allowed:
            risk_reason = RATE_LIMIT_EXCEEDED
        elif first_failed is not None:
            risk_reason = first_failed.detail
        else:
            risk_reason = None

        return EvaluationOutcome(
            passed=all_passed and rate_limit_allowed,
            gate_results=tuple(results),
            risk_reason=risk_reason,
        )

    def evaluate(
        self,
        draft_text: str,
        context: DecisionContext,
        rate_limit_allowed: bool = True,
    ) -> EvaluationOutcome:
        results = self.run_gates(draft_text, context)
        outcome = self.fold(results, rate_limit_allowed)

        logger.debug(
            "Gates evaluated",
            passed=outcome.passed,
            gate_ids=outcome.failed_gates,
            rate_limit_allowed=rate_limit_allowed,
        )
        return outcome
