"""Per-client login rate limiting."""

import logging
import math
import threading
import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass

from models.admin import LoginAttemptCounter
from utils.cache import LOGIN_ATTEMPT_TTL_SECONDS, create_login_attempt_cache

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
WINDOW_SECONDS = LOGIN_ATTEMPT_TTL_SECONDS


@dataclass
class AttemptDecision:
    """Result of registering a login attempt."""

    allowed: bool
    attempts: int
    retry_after: int | None = None


class LoginRateLimiter:
    """Counts login attempts per client id inside a fixed window.

    The counter store is injected so a shared store can replace the
    default in-process ``TTLCache``. Any mapping works; entries are
    ``LoginAttemptCounter`` values keyed by client id.
    """

    def __init__(
        self,
        store: MutableMapping[str, LoginAttemptCounter] | None = None,
        max_attempts: int = MAX_ATTEMPTS,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the rate limiter.

        Args:
            store: Mapping holding one counter per client id
            max_attempts: Attempts allowed per window
            window_seconds: Window length in seconds
            clock: Source of the current time in epoch seconds
        """
        self.store = store if store is not None else create_login_attempt_cache()
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.clock = clock
        self._lock = threading.Lock()

    def register_attempt(self, client_id: str) -> AttemptDecision:
        """Record an attempt and decide whether credentials may be checked.

        A blocked attempt does not extend or reset the window.
        """
        with self._lock:
            now = self.clock()
            counter = self.store.get(client_id)

            if counter is None or now - counter.window_start > self.window_seconds:
                counter = LoginAttemptCounter(count=1, window_start=now)
            elif counter.count >= self.max_attempts:
                retry_after = counter.window_start + self.window_seconds - now
                logger.warning(
                    "Login rate limit hit for %s (%d attempts)",
                    client_id,
                    counter.count,
                )
                return AttemptDecision(
                    allowed=False,
                    attempts=counter.count,
                    retry_after=max(1, math.ceil(retry_after)),
                )
            else:
                counter = LoginAttemptCounter(
                    count=counter.count + 1, window_start=counter.window_start
                )

            self.store[client_id] = counter
            return AttemptDecision(allowed=True, attempts=counter.count)

    def reset(self, client_id: str) -> None:
        """Forget all attempts from a client."""
        with self._lock:
            self.store.pop(client_id, None)

    def get_counter(self, client_id: str) -> LoginAttemptCounter | None:
        """Current counter for a client, if any."""
        return self.store.get(client_id)
