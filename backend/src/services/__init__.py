"""Services for the Feedback Survey backend."""

from .admin_dashboard_service import AdminDashboardService
from .auth_service import AdminAuthService
from .feedback_service import FeedbackService
from .newsletter_service import KitClient, NewsletterService
from .rate_limiter import LoginRateLimiter

__all__ = [
    "AdminAuthService",
    "AdminDashboardService",
    "FeedbackService",
    "KitClient",
    "LoginRateLimiter",
    "NewsletterService",
]
