import pytest

from autosend.infrastructure.audit import AuditLogger
from autosend.models.domain.decision_domain import (
    CONTEXT_UNAVAILABLE,
    RATE_LIMIT_EXCEEDED,
    HardBlockReason,
    QuotaPolicy,
)
from autosend.services.autosend.decision_service import AutoSendDecisionService
from autosend.services.autosend.rate_limiter import AutoSendRateLimiter

DRAFT = "Thanks, received!"


def _service(fake_clock, sink=None, policy=QuotaPolicy.ON_ATTEMPT, max_sends=10):
    return AutoSendDecisionService(
        rate_limiter=AutoSendRateLimiter(max_sends=max_sends, clock=fake_clock),
        audit=AuditLogger(sink=sink),
        quota_policy=policy,
    )


def test_clean_context_auto_sends(fake_clock, make_context):
    decision = _service(fake_clock).decide("user-1", DRAFT, make_context())

    assert decision.auto_send is True
    assert decision.route == "auto_send"
    assert decision.reason is None
    assert decision.outcome.passed is True
    assert decision.rate_limit.entry.count == 1


def test_hard_block_is_dispositive(fake_clock, make_context):
    decision = _service(fake_clock).decide(
        "user-1", DRAFT, make_context(contact={"is_vip": True, "sentiment_score": 0.9})
    )

    assert decision.auto_send is False
    assert decision.route == "human_review"
    assert decision.reason == HardBlockReason.VIP_MANUAL_OVERRIDE
    # Gates still evaluated for the audit trail
    assert decision.outcome.passed is True
    assert len(decision.outcome.gate_results) == 10


def test_hard_block_never_consumes_quota(fake_clock, make_context):
    service = _service(fake_clock)

    for _ in range(3):
        service.decide("user-1", DRAFT, make_context(contact={"sentiment_score": 0.1}))

    assert service.rate_limiter.status("user-1").entry.count == 0


def test_eleventh_decision_is_rate_limited(fake_clock, make_context):
    service = _service(fake_clock)
    decisions = [service.decide("user-1", DRAFT, make_context()) for _ in range(11)]

    assert [d.auto_send for d in decisions[:10]] == [True] * 10
    assert decisions[10].auto_send is False
    assert decisions[10].reason == RATE_LIMIT_EXCEEDED
    assert decisions[10].outcome.risk_reason == RATE_LIMIT_EXCEEDED

    fake_clock.advance(3600)
    after_reset = service.decide("user-1", DRAFT, make_context())

    assert after_reset.auto_send is True
    assert after_reset.rate_limit.entry.count == 1


def test_on_attempt_policy_charges_failed_gates(fake_clock, make_context):
    service = _service(fake_clock, policy=QuotaPolicy.ON_ATTEMPT)

    for _ in range(10):
        blocked = service.decide("user-1", DRAFT, make_context(current_hour=23))
        assert blocked.auto_send is False

    decision = service.decide("user-1", DRAFT, make_context())

    assert decision.auto_send is False
    assert decision.reason == RATE_LIMIT_EXCEEDED


def test_on_send_policy_only_charges_approved_sends(fake_clock, make_context):
    service = _service(fake_clock, policy=QuotaPolicy.ON_SEND)

    for _ in range(10):
        service.decide("user-1", DRAFT, make_context(current_hour=23))

    assert service.rate_limiter.status("user-1").entry.count == 0
    assert service.decide("user-1", DRAFT, make_context()).auto_send is True
    assert service.rate_limiter.status("user-1").entry.count == 1


def test_on_send_policy_still_reports_exhausted_window(fake_clock, make_context):
    service = _service(fake_clock, policy=QuotaPolicy.ON_SEND, max_sends=1)
    service.decide("user-1", DRAFT, make_context())

    failing = service.decide("user-1", DRAFT, make_context(current_hour=23))

    assert failing.outcome.risk_reason == RATE_LIMIT_EXCEEDED
    assert service.rate_limiter.status("user-1").entry.count == 1


def test_quota_policy_accepts_setting_strings(fake_clock):
    service = AutoSendDecisionService(quota_policy="on_send")

    assert service.quota_policy == QuotaPolicy.ON_SEND


def test_decisions_are_forwarded_to_audit(fake_clock, make_context, recording_sink):
    service = _service(fake_clock, sink=recording_sink)

    service.decide("user-1", DRAFT, make_context(contact={"is_new": True}))

    record = recording_sink.records[0]
    assert record["user_id"] == "user-1"
    assert record["route"] == "human_review"
    assert len(record["gates"]) == 10
    assert record["risk_reason"] == "First-touch contact - human must respond first"
    assert record["rate_limit"]["used"] == 1


def test_audit_failure_does_not_break_decision(fake_clock, make_context):
    class BrokenSink:
        def write(self, record):
            raise RuntimeError("audit store down")

    decision = _service(fake_clock, sink=BrokenSink()).decide("user-1", DRAFT, make_context())

    assert decision.auto_send is True


def test_decide_from_camel_case_payload(fake_clock, make_payload):
    decision = _service(fake_clock).decide_from_payload("user-1", DRAFT, make_payload())

    assert decision.auto_send is True


def test_missing_payload_routes_to_human(fake_clock, recording_sink):
    service = _service(fake_clock, sink=recording_sink)

    decision = service.decide_from_payload("user-1", DRAFT, None)

    assert decision.auto_send is False
    assert decision.reason == CONTEXT_UNAVAILABLE
    assert decision.outcome is None
    assert recording_sink.records[0]["reason"] == CONTEXT_UNAVAILABLE


def test_missing_section_routes_to_human(fake_clock, make_payload):
    payload = make_payload()
    del payload["supervisor"]

    decision = _service(fake_clock).decide_from_payload("user-1", DRAFT, payload)

    assert decision.reason == CONTEXT_UNAVAILABLE


def test_malformed_field_routes_to_human(fake_clock, make_payload):
    payload = make_payload()
    payload["supervisor"]["safeToSend"] = "definitely"

    decision = _service(fake_clock).decide_from_payload("user-1", DRAFT, payload)

    assert decision.reason == CONTEXT_UNAVAILABLE
    assert decision.auto_send is False


def test_missing_draft_routes_to_human(fake_clock, make_payload):
    decision = _service(fake_clock).decide_from_payload("user-1", None, make_payload())

    assert decision.reason == CONTEXT_UNAVAILABLE


@pytest.mark.parametrize(
    "section, field, value",
    [
        ("userSettings", "confidenceThreshold", False),
        ("contact", "messageCount", True),
        ("contact", "sentimentScore", True),
    ],
)
def test_boolean_in_numeric_field_routes_to_human(fake_clock, make_payload, section, field, value):
    payload = make_payload()
    payload[section][field] = value
    payload["supervisor"]["confidenceScore"] = 0.01

    decision = _service(fake_clock).decide_from_payload("user-1", DRAFT, payload)

    assert decision.auto_send is False
    assert decision.reason == CONTEXT_UNAVAILABLE
