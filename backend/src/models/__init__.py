"""Data models for the Feedback Survey service."""

from .admin import AdminSession, Anonymous, Authenticated, LoginResult
from .feedback import (
    AttributionSnapshot,
    FeedbackDraft,
    FeedbackRecord,
    FeedbackSubmission,
)

__all__ = [
    "AdminSession",
    "Anonymous",
    "Authenticated",
    "LoginResult",
    "AttributionSnapshot",
    "FeedbackDraft",
    "FeedbackRecord",
    "FeedbackSubmission",
]
