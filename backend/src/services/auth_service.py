"""Admin authentication service: credential checks and signed sessions."""

import hmac
import logging
import os
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from models.admin import (
    AdminSession,
    Anonymous,
    Authenticated,
    CookieSettings,
    LoginFailureReason,
    LoginResult,
)
from services.rate_limiter import LoginRateLimiter

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "admin-session"

LOGIN_SUCCESS_MESSAGE = "Login successful"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
TOO_MANY_ATTEMPTS_MESSAGE = "Too many login attempts. Please try again in 15 minutes."


class AuthenticationError(Exception):
    """Authentication error."""

    pass


class AdminAuthService:
    """Service for admin login, session issuing and session checks."""

    # JWT settings
    JWT_ALGORITHM = "HS256"
    SESSION_EXPIRATION_HOURS = 24
    TOKEN_TYPE = "admin_session"

    def __init__(
        self,
        rate_limiter: LoginRateLimiter | None = None,
        admin_username: str | None = None,
        admin_password: str | None = None,
        session_secret: str | None = None,
        secure_cookies: bool | None = None,
    ):
        """Initialize auth service.

        Args:
            rate_limiter: Limiter guarding credential checks
            admin_username: Expected admin username
            admin_password: Expected admin password (logins fail when unset)
            session_secret: Secret for signing session tokens
            secure_cookies: Mark cookies Secure (defaults to production only)
        """
        self.rate_limiter = rate_limiter or LoginRateLimiter()
        self.admin_username = admin_username or os.environ.get(
            "ADMIN_USERNAME", "admin"
        )
        self.admin_password = admin_password or os.environ.get("ADMIN_PASSWORD")
        self.session_secret = session_secret or os.environ.get(
            "SESSION_SECRET_KEY", "dev-secret-change-in-prod"
        )
        if secure_cookies is None:
            secure_cookies = os.environ.get("ENVIRONMENT") == "production"
        self.secure_cookies = secure_cookies

    # ============================================
    # Login
    # ============================================

    def attempt_login(
        self, client_id: str, username: str, password: str
    ) -> LoginResult:
        """Check admin credentials behind the per-client rate limit.

        Args:
            client_id: Client identifier (usually the caller's IP)
            username: Submitted username
            password: Submitted password

        Returns:
            LoginResult carrying a session token on success
        """
        decision = self.rate_limiter.register_attempt(client_id)
        if not decision.allowed:
            return LoginResult(
                ok=False,
                message=TOO_MANY_ATTEMPTS_MESSAGE,
                reason=LoginFailureReason.TOO_MANY_ATTEMPTS,
                retry_after=decision.retry_after,
            )

        if not self._credentials_match(username, password):
            logger.warning(
                "Failed admin login from %s (attempt %d)",
                client_id,
                decision.attempts,
            )
            return LoginResult(
                ok=False,
                message=INVALID_CREDENTIALS_MESSAGE,
                reason=LoginFailureReason.INVALID_CREDENTIALS,
            )

        self.rate_limiter.reset(client_id)
        logger.info("Admin login from %s", client_id)
        return LoginResult(
            ok=True,
            message=LOGIN_SUCCESS_MESSAGE,
            token=self.create_session_token(self.admin_username),
        )

    def _credentials_match(self, username: str, password: str) -> bool:
        """Constant-time comparison against the configured credentials."""
        if not self.admin_password:
            logger.warning("ADMIN_PASSWORD is not configured, rejecting login")
            return False

        username_ok = hmac.compare_digest(
            username.encode(), self.admin_username.encode()
        )
        password_ok = hmac.compare_digest(
            password.encode(), self.admin_password.encode()
        )
        return username_ok and password_ok

    # ============================================
    # Session Management
    # ============================================

    def create_session_token(self, username: str) -> str:
        """Create a signed session token valid for 24 hours."""
        now = datetime.now(UTC)
        payload = {
            "sub": username,
            "type": self.TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(hours=self.SESSION_EXPIRATION_HOURS),
        }
        return jwt.encode(payload, self.session_secret, algorithm=self.JWT_ALGORITHM)

    def verify_session_token(self, token: str) -> Authenticated:
        """Verify a session token.

        Raises:
            AuthenticationError: If the token is expired, forged or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self.session_secret,
                algorithms=[self.JWT_ALGORITHM],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Session has expired")
        except JWTError as e:
            raise AuthenticationError(f"Invalid session: {str(e)}")

        if payload.get("type") != self.TOKEN_TYPE:
            raise AuthenticationError("Invalid token type")

        username = payload.get("sub")
        if not username:
            raise AuthenticationError("Missing username in session")

        return Authenticated(
            username=username,
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )

    def check_session(self, token: str | None) -> AdminSession:
        """Decode a session cookie value into an admin session."""
        if not token:
            return Anonymous()
        try:
            return self.verify_session_token(token)
        except AuthenticationError as e:
            logger.info("Rejected admin session: %s", e)
            return Anonymous()

    # ============================================
    # Cookies
    # ============================================

    def session_cookie(self, token: str) -> CookieSettings:
        """Cookie carrying a freshly issued session."""
        return CookieSettings(
            key=SESSION_COOKIE_NAME,
            value=token,
            max_age=self.SESSION_EXPIRATION_HOURS * 3600,
            secure=self.secure_cookies,
        )

    def revoke_session(self) -> CookieSettings:
        """Cookie that clears the session immediately."""
        return CookieSettings(
            key=SESSION_COOKIE_NAME,
            value="",
            max_age=0,
            secure=self.secure_cookies,
        )
