"""
Auto-send decision domain models.

Immutable snapshots of the collaborator data a decision is made from, and
the structured results the engine hands back to the send orchestrator and
the audit writer. They carry no business logic so they can be shared by the
services, the API layer and the tests.
"""

from dataclasses import dataclass
from enum import StrEnum


class MessageType(StrEnum):
    ACKNOWLEDGEMENT = "ACKNOWLEDGEMENT"
    CONFIRMATION = "CONFIRMATION"
    INFORMATION = "INFORMATION"
    COMPLEX = "COMPLEX"


class HardBlockReason(StrEnum):
    VIP_MANUAL_OVERRIDE = "VIP_MANUAL_OVERRIDE"
    NEGATIVE_SENTIMENT_DETECTED = "NEGATIVE_SENTIMENT_DETECTED"


class DeltaClassification(StrEnum):
    NEGLIGIBLE = "negligible"
    PARTIAL = "partial"
    FULL_REWRITE = "full_rewrite"


class QuotaPolicy(StrEnum):
    """When an auto-send decision is charged against the user's hourly quota."""

    ON_ATTEMPT = "on_attempt"
    ON_SEND = "on_send"


RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
CONTEXT_UNAVAILABLE = "CONTEXT_UNAVAILABLE"


@dataclass(frozen=True, slots=True)
class UserSettings:
    auto_send_enabled: bool
    confidence_threshold: float
    working_hours_start: int
    working_hours_end: int
    allow_after_hours: bool


@dataclass(frozen=True, slots=True)
class ChannelSettings:
    auto_send_enabled: bool


@dataclass(frozen=True, slots=True)
class Contact:
    message_count: int
    is_new: bool
    is_vip: bool
    sentiment_score: float


@dataclass(frozen=True, slots=True)
class SupervisorVerdict:
    """Structured safety/intent classification produced upstream."""

    confidence_score: float
    safe_to_send: bool
    message_type: MessageType
    has_forbidden_topics: bool
    forbidden_topics_found: tuple[str, ...] = ()
    is_scheduling_unambiguous: bool | None = None  # None = unknown
    contains_new_commitments: bool = False
    sender_requested_attachment: bool = False
    reasoning: str = ""


@dataclass(frozen=True, slots=True)
class DecisionContext:
    user_settings: UserSettings
    channel_settings: ChannelSettings
    contact: Contact
    supervisor: SupervisorVerdict
    current_hour: int


@dataclass(frozen=True, slots=True)
class GateResult:
    id: str
    passed: bool
    detail: str


@dataclass(frozen=True, slots=True)
class EvaluationOutcome:
    passed: bool
    gate_results: tuple[GateResult, ...]
    risk_reason: str | None = None

    @property
    def failed_gates(self) -> list[str]:
        return [result.id for result in self.gate_results if not result.passed]


@dataclass(frozen=True, slots=True)
class HardBlockResult:
    blocked: bool
    reason: HardBlockReason | None = None


@dataclass(frozen=True, slots=True)
class RateLimitEntry:
    """Fixed-window counter for one user. reset_at is epoch seconds."""

    user_key: str
    count: int
    reset_at: float


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    allowed: bool
    entry: RateLimitEntry
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.entry.count)


@dataclass(frozen=True, slots=True)
class DeltaResult:
    ratio: float
    classification: DeltaClassification
    distance: int = 0


@dataclass(frozen=True, slots=True)
class AutoSendDecision:
    """Combined verdict handed to send orchestration and the audit writer."""

    auto_send: bool
    reason: str | None
    hard_block: HardBlockResult
    outcome: EvaluationOutcome | None
    rate_limit: RateLimitStatus | None = None

    @property
    def route(self) -> str:
        return "auto_send" if self.auto_send else "human_review"
