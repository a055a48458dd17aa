"""Admin authentication models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Request body for admin login."""

    username: str = Field("", max_length=200)
    password: str = Field("", max_length=500)


class LoginFailureReason(str, Enum):
    """Why a login attempt was rejected."""

    INVALID_CREDENTIALS = "invalid_credentials"
    TOO_MANY_ATTEMPTS = "too_many_attempts"


@dataclass
class LoginAttemptCounter:
    """Attempts seen from one client inside the current window."""

    count: int
    window_start: float


@dataclass
class LoginResult:
    """Outcome of an admin login attempt."""

    ok: bool
    message: str
    reason: LoginFailureReason | None = None
    retry_after: int | None = None
    token: str | None = None


@dataclass(frozen=True)
class Anonymous:
    """No valid admin session."""

    authenticated = False


@dataclass(frozen=True)
class Authenticated:
    """Valid admin session decoded from a signed token."""

    username: str
    expires_at: datetime

    authenticated = True


AdminSession = Anonymous | Authenticated


@dataclass(frozen=True)
class CookieSettings:
    """Attributes for the admin session cookie."""

    key: str
    value: str
    max_age: int
    httponly: bool = True
    secure: bool = False
    samesite: str = "strict"
    path: str = "/"

    def as_kwargs(self) -> dict:
        """Keyword arguments for ``Response.set_cookie``."""
        return {
            "key": self.key,
            "value": self.value,
            "max_age": self.max_age,
            "httponly": self.httponly,
            "secure": self.secure,
            "samesite": self.samesite,
            "path": self.path,
        }
