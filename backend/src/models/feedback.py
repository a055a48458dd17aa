"""Feedback survey data models."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ClientCommunicationImpact(str, Enum):
    """Answers to "did the tool change how you communicate with clients?"."""

    YES_NOTICEABLY = "yes_noticeably"
    SOMEWHAT = "somewhat"
    NO_CHANGE = "no_change"
    TOO_EARLY_TO_TELL = "too_early_to_tell"


class ValuePerception(str, Enum):
    """Answers to "is the tool worth paying for?"."""

    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


class FirmProfile(str, Enum):
    """Size of the respondent's firm."""

    SOLO = "solo"
    SMALL = "2_10_lawyers"
    MEDIUM = "11_50_lawyers"
    LARGE = "50_plus_lawyers"


class EarlyAccessInvitation(str, Enum):
    """Whether the respondent wants early access to new tools."""

    YES = "yes"
    NO = "no"


class NextTool(str, Enum):
    """Automation tools respondents can vote for."""

    MISSED_CALL_AGENT = "missed_call_agent"
    REENGAGEMENT_ENGINE = "reengagement_engine"
    REVIEW_REFERRAL_BUILDER = "review_referral_builder"
    CLIENT_STATUS_UPDATES = "client_status_updates"
    INTAKE_APPLICATION = "intake_application"


MIN_RATING = 1
MAX_RATING = 10
DEFAULT_RATING = 5


class AttributionSnapshot(BaseModel):
    """UTM attribution captured once per browser session."""

    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None
    referrer: str | None = None
    landing_page: str | None = None


ATTRIBUTION_FIELDS = tuple(AttributionSnapshot.model_fields)


class FeedbackDraft(BaseModel):
    """In-progress survey answers.

    Choice fields hold an empty string until answered. Ratings mirror the
    slider widget: they default to 5 and only accept 1-10.
    """

    email: str = ""
    name: str = ""
    overall_usefulness: int = Field(DEFAULT_RATING, ge=MIN_RATING, le=MAX_RATING)
    client_communication_impact: str = ""
    reliability: int = Field(DEFAULT_RATING, ge=MIN_RATING, le=MAX_RATING)
    value_perception: str = ""
    next_tools: list[str] = Field(default_factory=list)
    firm_profile: str = ""
    early_access_invitation: str = ""

    @field_validator("next_tools")
    @classmethod
    def validate_next_tools(cls, v: list[str]) -> list[str]:
        """Keep known tool ids once each, in selection order."""
        known = {tool.value for tool in NextTool}
        unknown = [tool for tool in v if tool not in known]
        if unknown:
            raise ValueError(f"Unknown tool: {', '.join(unknown)}")
        return list(dict.fromkeys(v))


class FeedbackSubmission(FeedbackDraft):
    """Request body for a completed survey."""

    email: str = Field(..., max_length=254)
    name: str = Field(..., max_length=200)


class FeedbackRecord(BaseModel):
    """Stored feedback record.

    Ratings and choice fields are read leniently because older rows stored
    labels such as "10 yes_noticeably" instead of bare numbers.
    """

    id: str
    email: str = ""
    name: str = ""
    overall_usefulness: int | str | None = None
    client_communication_impact: str | None = None
    reliability: int | str | None = None
    value_perception: str | None = None
    next_tools: list[str] = Field(default_factory=list)
    firm_profile: str | None = None
    early_access_invitation: str | None = None
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None
    referrer: str | None = None
    landing_page: str | None = None

    @property
    def attribution(self) -> AttributionSnapshot:
        """Attribution fields of this record."""
        return AttributionSnapshot(
            **{field: getattr(self, field) for field in ATTRIBUTION_FIELDS}
        )
