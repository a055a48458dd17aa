"""Access rules for admin paths."""

from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlencode

ADMIN_PREFIX = "/admin"
LOGIN_PATH = "/admin/login"
SITE_ROOT = "/"
SECRET_PARAM = "secret"


@dataclass(frozen=True)
class RouteDecision:
    """Whether a request may proceed, and where to send it if not."""

    allowed: bool
    redirect_to: str | None = None


ALLOW = RouteDecision(allowed=True)


def is_admin_path(path: str) -> bool:
    """True for ``/admin`` and anything below it."""
    return path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/")


def login_url(access_secret: str | None) -> str:
    """Login page URL, carrying the access secret when one is configured."""
    if access_secret:
        return f"{LOGIN_PATH}?{urlencode({SECRET_PARAM: access_secret})}"
    return LOGIN_PATH


def dashboard_url(access_secret: str | None) -> str:
    """Dashboard URL, carrying the access secret when one is configured."""
    if access_secret:
        return f"{ADMIN_PREFIX}?{urlencode({SECRET_PARAM: access_secret})}"
    return ADMIN_PREFIX


def evaluate_admin_route(
    path: str,
    query_params: Mapping[str, str],
    has_valid_session: bool,
    access_secret: str | None = None,
) -> RouteDecision:
    """Decide whether a request to ``path`` may proceed.

    With an access secret configured, every admin path needs a matching
    ``secret`` query parameter or the caller is sent to the site root.
    Every admin path except the login page also needs a valid session.

    Args:
        path: Request path
        query_params: Request query parameters
        has_valid_session: Whether the request carries a valid admin session
        access_secret: Secret required on admin paths, if configured

    Returns:
        RouteDecision
    """
    if not is_admin_path(path):
        return ALLOW

    if access_secret and query_params.get(SECRET_PARAM) != access_secret:
        return RouteDecision(allowed=False, redirect_to=SITE_ROOT)

    if path.rstrip("/") != LOGIN_PATH and not has_valid_session:
        return RouteDecision(allowed=False, redirect_to=login_url(access_secret))

    return ALLOW
