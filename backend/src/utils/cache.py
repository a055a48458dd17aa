"""Caching utilities for the Feedback Survey API."""

from cachetools import TTLCache

# Login attempts live for one rate-limit window (15 minutes)
LOGIN_ATTEMPT_TTL_SECONDS = 15 * 60
# Upper bound on distinct client ids tracked at once
LOGIN_ATTEMPT_MAX_CLIENTS = 10000


def create_login_attempt_cache(
    maxsize: int = LOGIN_ATTEMPT_MAX_CLIENTS,
    ttl: float = LOGIN_ATTEMPT_TTL_SECONDS,
    timer=None,
) -> TTLCache:
    """Create the store backing the login rate limiter.

    Entries expire one window after their last write, so abandoned
    counters do not accumulate. Pass ``timer`` to control expiry in tests.
    """
    if timer is None:
        return TTLCache(maxsize=maxsize, ttl=ttl)
    return TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)


# Cache-Control header values
CACHE_CONTROL_NO_STORE = "no-store"  # Admin data and session responses
CACHE_CONTROL_PRIVATE = "private, no-cache"  # Per-session attribution data
