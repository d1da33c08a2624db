import pytest

from autosend.auth.verify import auth_dependency
from autosend.models.domain.decision_domain import (
    ChannelSettings,
    Contact,
    DecisionContext,
    MessageType,
    SupervisorVerdict,
    UserSettings,
)


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


class FakeRedis:
    """Records eval calls and replays scripted replies."""

    def __init__(self, replies=None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[tuple] = []

    def eval(self, script, numkeys, *args):
        self.calls.append((script, numkeys, *args))
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)


@pytest.fixture
def fake_redis():
    return FakeRedis()


class RecordingSink:
    def __init__(self):
        self.records: list = []

    def write(self, record):
        self.records.append(record)

    def submit(self, user_id, result, ai_draft, human_final):
        self.records.append((user_id, result, ai_draft, human_final))


@pytest.fixture
def recording_sink():
    return RecordingSink()


def build_context(
    user_settings: dict | None = None,
    channel_settings: dict | None = None,
    contact: dict | None = None,
    supervisor: dict | None = None,
    current_hour: int = 10,
) -> DecisionContext:
    """A context where every gate passes, with per-section overrides."""
    user = {
        "auto_send_enabled": True,
        "confidence_threshold": 0.85,
        "working_hours_start": 9,
        "working_hours_end": 17,
        "allow_after_hours": False,
        **(user_settings or {}),
    }
    channel = {"auto_send_enabled": True, **(channel_settings or {})}
    contact_data = {
        "message_count": 12,
        "is_new": False,
        "is_vip": False,
        "sentiment_score": 0.8,
        **(contact or {}),
    }
    verdict = {
        "confidence_score": 0.93,
        "safe_to_send": True,
        "message_type": MessageType.ACKNOWLEDGEMENT,
        "has_forbidden_topics": False,
        "forbidden_topics_found": (),
        "is_scheduling_unambiguous": None,
        "contains_new_commitments": False,
        "sender_requested_attachment": False,
        "reasoning": "",
        **(supervisor or {}),
    }
    return DecisionContext(
        user_settings=UserSettings(**user),
        channel_settings=ChannelSettings(**channel),
        contact=Contact(**contact_data),
        supervisor=SupervisorVerdict(**verdict),
        current_hour=current_hour,
    )


def build_payload(**overrides) -> dict:
    """Collaborator payload (camelCase, as the upstream services send it)."""
    payload = {
        "userSettings": {
            "autoSendEnabled": True,
            "confidenceThreshold": 0.85,
            "workingHoursStart": 9,
            "workingHoursEnd": 17,
            "allowAfterHours": False,
        },
        "channelSettings": {"autoSendEnabled": True},
        "contact": {"messageCount": 12, "isNew": False, "isVIP": False, "sentimentScore": 0.8},
        "supervisor": {
            "confidenceScore": 0.93,
            "safeToSend": True,
            "messageType": "ACKNOWLEDGEMENT",
            "hasForbiddenTopics": False,
            "forbiddenTopicsFound": [],
            "isSchedulingUnambiguous": None,
            "containsNewCommitments": False,
            "senderRequestedAttachment": False,
            "reasoning": "Simple thank-you acknowledgement",
        },
        "currentHour": 10,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_context():
    return build_context


@pytest.fixture
def make_payload():
    return build_payload
