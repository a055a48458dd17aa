"""Pytest configuration and shared fixtures."""

from unittest.mock import Mock

import pytest

from models.feedback import AttributionSnapshot, FeedbackDraft, FeedbackRecord


@pytest.fixture
def complete_draft():
    """A draft that passes every wizard step."""
    return FeedbackDraft(
        email="jane@lawfirm.com",
        name="Jane Counsel",
        overall_usefulness=8,
        client_communication_impact="yes_noticeably",
        reliability=9,
        value_perception="yes",
        next_tools=["missed_call_agent", "intake_application"],
        firm_profile="2_10_lawyers",
        early_access_invitation="yes",
    )


@pytest.fixture
def sample_attribution():
    """Attribution captured from a newsletter campaign link."""
    return AttributionSnapshot(
        utm_source="newsletter",
        utm_medium="email",
        utm_campaign="spring_launch",
        referrer="https://mail.example.com/",
        landing_page="https://survey.example.com/?utm_source=newsletter",
    )


@pytest.fixture
def sample_records():
    """Stored records, newest first."""
    return [
        FeedbackRecord(
            id="01HZZZ0000000000000000000C",
            email="solo@practice.com",
            name="Sam Solo",
            overall_usefulness=8,
            client_communication_impact="somewhat",
            reliability=7,
            value_perception="yes",
            next_tools=["missed_call_agent"],
            firm_profile="solo",
            early_access_invitation="yes",
            created_at="2026-03-03T10:00:00+00:00",
            updated_at="2026-03-03T10:00:00+00:00",
        ),
        FeedbackRecord(
            id="01HZZZ0000000000000000000B",
            email="partner@biglaw.com",
            name="Pat Partner",
            overall_usefulness=6,
            client_communication_impact="no_change",
            reliability=5,
            value_perception="maybe",
            next_tools=["reengagement_engine", "client_status_updates"],
            firm_profile="50_plus_lawyers",
            early_access_invitation="no",
            created_at="2026-03-02T10:00:00+00:00",
            updated_at="2026-03-02T10:00:00+00:00",
        ),
        FeedbackRecord(
            id="01HZZZ0000000000000000000A",
            email="ana@smallfirm.com",
            name="Ana Solorzano",
            overall_usefulness="10 yes_noticeably",
            client_communication_impact="yes_noticeably",
            reliability="9",
            value_perception="yes",
            next_tools=["intake_application"],
            firm_profile="2_10_lawyers",
            early_access_invitation="yes",
            created_at="2026-03-01T10:00:00+00:00",
            updated_at="2026-03-01T10:00:00+00:00",
            utm_source="linkedin",
        ),
    ]


@pytest.fixture
def mock_dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    mock_table = Mock()
    mock_table.put_item.return_value = {}
    mock_table.scan.return_value = {"Items": []}
    return mock_table
