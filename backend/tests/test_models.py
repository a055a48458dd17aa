"""Tests for data models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from models.admin import Anonymous, Authenticated, CookieSettings, LoginRequest
from models.feedback import (
    ATTRIBUTION_FIELDS,
    AttributionSnapshot,
    ClientCommunicationImpact,
    FeedbackDraft,
    FeedbackRecord,
    FeedbackSubmission,
    FirmProfile,
    NextTool,
)


class TestFeedbackModels:
    """Test cases for feedback models."""

    def test_choice_enums(self):
        assert ClientCommunicationImpact.TOO_EARLY_TO_TELL == "too_early_to_tell"
        assert FirmProfile.LARGE == "50_plus_lawyers"
        assert len(list(FirmProfile)) == 4
        assert len(list(NextTool)) == 5

    def test_draft_defaults(self):
        draft = FeedbackDraft()

        assert draft.email == ""
        assert draft.overall_usefulness == 5
        assert draft.reliability == 5
        assert draft.next_tools == []
        assert draft.firm_profile == ""

    @pytest.mark.parametrize("rating", [0, 11, -1])
    def test_draft_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError):
            FeedbackDraft(overall_usefulness=rating)

    @pytest.mark.parametrize("rating", [1, 10])
    def test_draft_rating_bounds(self, rating):
        assert FeedbackDraft(reliability=rating).reliability == rating

    def test_draft_tools_deduplicated_in_order(self):
        draft = FeedbackDraft(
            next_tools=["intake_application", "missed_call_agent", "intake_application"]
        )
        assert draft.next_tools == ["intake_application", "missed_call_agent"]

    def test_draft_rejects_unknown_tool(self):
        with pytest.raises(ValidationError, match="Unknown tool: time_machine"):
            FeedbackDraft(next_tools=["missed_call_agent", "time_machine"])

    def test_record_keeps_stored_tools(self):
        record = FeedbackRecord(id="x", next_tools=["a", "a"])
        assert record.next_tools == ["a", "a"]

    def test_submission_requires_contact(self):
        with pytest.raises(ValidationError):
            FeedbackSubmission()

    def test_submission_email_length(self):
        with pytest.raises(ValidationError):
            FeedbackSubmission(email="a" * 250 + "@b.com", name="Al")

    def test_record_requires_id(self):
        with pytest.raises(ValidationError):
            FeedbackRecord(email="a@b.com")

    def test_record_timestamps_default_to_now(self):
        record = FeedbackRecord(id="x")

        created = datetime.fromisoformat(record.created_at)
        assert abs((datetime.now(UTC) - created).total_seconds()) < 5

    def test_record_accepts_legacy_rating_strings(self):
        record = FeedbackRecord(id="x", overall_usefulness="10 yes_noticeably")
        assert record.overall_usefulness == "10 yes_noticeably"

    def test_record_attribution(self, sample_attribution):
        record = FeedbackRecord(id="x", **sample_attribution.model_dump())
        assert record.attribution == sample_attribution

    def test_attribution_fields(self):
        assert ATTRIBUTION_FIELDS == (
            "utm_source",
            "utm_medium",
            "utm_campaign",
            "utm_term",
            "utm_content",
            "referrer",
            "landing_page",
        )
        assert AttributionSnapshot().model_dump(exclude_none=True) == {}


class TestAdminModels:
    """Test cases for admin session models."""

    def test_login_request_defaults(self):
        request = LoginRequest()
        assert request.username == ""
        assert request.password == ""

    def test_session_variants(self):
        session = Authenticated(username="admin", expires_at=datetime.now(UTC))

        assert session.authenticated is True
        assert Anonymous().authenticated is False

    def test_cookie_settings_defaults(self):
        cookie = CookieSettings(key="k", value="v", max_age=10)

        assert cookie.httponly is True
        assert cookie.secure is False
        assert cookie.samesite == "strict"
        assert cookie.path == "/"
