# autosend/models/api/decision_request.py
"""
Auto-send API request models.

Collaborator payloads (settings, contact profile, supervisor verdict) are
parsed here. Every default is the value that BLOCKS auto-send, so a missing
field can never open a gate. Numbers and flags are strict (JSON true is not
1, "0.9" is not 0.9). Malformed values fail validation, which the
decision service turns into a human-review route.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel

from autosend.models.domain.decision_domain import (
    ChannelSettings,
    Contact,
    DecisionContext,
    MessageType,
    SupervisorVerdict,
    UserSettings,
)


class CollaboratorPayload(BaseModel):
    """Accepts both snake_case and the collaborators' camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class UserSettingsPayload(CollaboratorPayload):
    auto_send_enabled: StrictBool = Field(default=False, description="Global auto-send switch")
    confidence_threshold: StrictFloat = Field(
        default=1.0, ge=0.0, le=1.0, description="Minimum supervisor confidence"
    )
    working_hours_start: StrictInt = Field(default=9, ge=0, le=23, description="First working hour")
    working_hours_end: StrictInt = Field(default=17, ge=0, le=23, description="Last working hour")
    allow_after_hours: StrictBool = Field(default=False, description="Send outside working hours")

    def to_domain(self) -> UserSettings:
        return UserSettings(
            auto_send_enabled=self.auto_send_enabled,
            confidence_threshold=self.confidence_threshold,
            working_hours_start=self.working_hours_start,
            working_hours_end=self.working_hours_end,
            allow_after_hours=self.allow_after_hours,
        )


class ChannelSettingsPayload(CollaboratorPayload):
    auto_send_enabled: StrictBool = Field(default=False, description="Channel auto-send switch")

    def to_domain(self) -> ChannelSettings:
        return ChannelSettings(auto_send_enabled=self.auto_send_enabled)


class ContactPayload(CollaboratorPayload):
    message_count: StrictInt = Field(default=0, ge=0, description="Messages exchanged so far")
    is_new: StrictBool = Field(default=True, description="Contact has never been replied to")
    is_vip: StrictBool = Field(
        default=False,
        validation_alias=AliasChoices("is_vip", "isVip", "isVIP"),
        description="User marked the contact as VIP",
    )
    sentiment_score: StrictFloat = Field(
        default=0.0, ge=0.0, le=1.0, description="Recent sentiment, 0 = hostile, 1 = warm"
    )

    def to_domain(self) -> Contact:
        return Contact(
            message_count=self.message_count,
            is_new=self.is_new,
            is_vip=self.is_vip,
            sentiment_score=self.sentiment_score,
        )


class SupervisorPayload(CollaboratorPayload):
    confidence_score: StrictFloat = Field(default=0.0, ge=0.0, le=1.0)
    safe_to_send: StrictBool = Field(default=False)
    message_type: MessageType = Field(default=MessageType.COMPLEX)
    has_forbidden_topics: StrictBool = Field(default=True)
    forbidden_topics_found: list[str] = Field(default_factory=list)
    # Explicit null means "unknown" and passes; an absent key is treated as ambiguous
    is_scheduling_unambiguous: StrictBool | None = Field(default=False)
    contains_new_commitments: StrictBool = Field(default=True)
    sender_requested_attachment: StrictBool = Field(default=True)
    reasoning: str = Field(default="", max_length=2000)

    def to_domain(self) -> SupervisorVerdict:
        return SupervisorVerdict(
            confidence_score=self.confidence_score,
            safe_to_send=self.safe_to_send,
            message_type=self.message_type,
            has_forbidden_topics=self.has_forbidden_topics,
            forbidden_topics_found=tuple(self.forbidden_topics_found),
            is_scheduling_unambiguous=self.is_scheduling_unambiguous,
            contains_new_commitments=self.contains_new_commitments,
            sender_requested_attachment=self.sender_requested_attachment,
            reasoning=self.reasoning,
        )


class DecisionContextPayload(CollaboratorPayload):
    user_settings: UserSettingsPayload
    channel_settings: ChannelSettingsPayload
    contact: ContactPayload
    supervisor: SupervisorPayload
    current_hour: StrictInt = Field(..., ge=0, le=23, description="Hour of day in the user's timezone")

    def to_domain(self) -> DecisionContext:
        return DecisionContext(
            user_settings=self.user_settings.to_domain(),
            channel_settings=self.channel_settings.to_domain(),
            contact=self.contact.to_domain(),
            supervisor=self.supervisor.to_domain(),
            current_hour=self.current_hour,
        )


class HardBlockRequest(CollaboratorPayload):
    contact: ContactPayload


class DeltaFeedbackRequest(CollaboratorPayload):
    """Request for analyzing a human edit of an AI draft."""

    ai_draft: str = Field(..., max_length=20000, description="Original AI draft")
    human_final: str = Field(..., max_length=20000, description="Text the human actually sent")
