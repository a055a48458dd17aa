"""Main FastAPI application handler for Lambda deployment."""

import base64
import logging
import os
import time
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError
from fastapi import (
    BackgroundTasks,
    FastAPI,
    HTTPException,
    Path,
    Query,
    Request,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from mangum import Mangum
from pydantic import BaseModel, Field

from models.admin import LoginFailureReason, LoginRequest
from models.feedback import FeedbackDraft, FeedbackSubmission, FirmProfile
from services.admin_dashboard_service import (
    ALL_FIRMS,
    AdminDashboardService,
    csv_filename,
)
from services.attribution_service import STORAGE_KEY, AttributionTracker
from services.auth_service import SESSION_COOKIE_NAME, AdminAuthService
from services.feedback_service import FeedbackService, StorageError
from services.newsletter_service import IntegrationError, KitClient, NewsletterService
from services.rate_limiter import LoginRateLimiter
from services.route_guard import dashboard_url, evaluate_admin_route, is_admin_path
from services.wizard import SUBMIT_ERROR_MESSAGE, validate_draft, validate_step
from utils.cache import CACHE_CONTROL_NO_STORE, CACHE_CONTROL_PRIVATE

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Feedback Survey API",
    description="API for the product feedback survey and its admin dashboard",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ATTRIBUTION_COOKIE_NAME = "utm_params"


@app.middleware("http")
async def admin_route_guard(request: Request, call_next):
    """Redirect admin requests lacking the access secret or a session."""
    path = request.url.path
    if is_admin_path(path):
        session = get_auth_service().check_session(
            request.cookies.get(SESSION_COOKIE_NAME)
        )
        decision = evaluate_admin_route(
            path,
            request.query_params,
            has_valid_session=session.authenticated,
            access_secret=get_admin_secret(),
        )
        if not decision.allowed:
            return RedirectResponse(
                decision.redirect_to, status_code=status.HTTP_307_TEMPORARY_REDIRECT
            )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log all API requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000

    # Log slow requests (>1s) at WARNING level for monitoring
    path = request.url.path
    if duration_ms > 1000:
        logger.warning(
            "[SLOW] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 500:
        logger.error(
            "[ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 400:
        logger.info(
            "[CLIENT_ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )

    return response


# Lazy-initialized AWS clients and services
_dynamodb = None
_feedback_table = None
_feedback_service = None
_auth_service = None
_newsletter_service = None
_dashboard_service = None


def reset_services():
    """Reset all lazy-initialized services. Useful for testing.

    Also resets boto3's default session so that subsequent calls to
    boto3.resource() create fresh sessions within the current mock context
    (e.g., moto's mock_aws).
    """
    global _dynamodb, _feedback_table, _feedback_service, _auth_service
    global _newsletter_service, _dashboard_service
    _dynamodb = None
    _feedback_table = None
    _feedback_service = None
    _auth_service = None
    _newsletter_service = None
    _dashboard_service = None
    # Reset boto3's default session so new clients use the moto mock context
    boto3.DEFAULT_SESSION = None


def get_dynamodb():
    """Get or create DynamoDB resource (lazy init)."""
    global _dynamodb
    if _dynamodb is None:
        region = os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        _dynamodb = boto3.resource("dynamodb", region_name=region)
    return _dynamodb


def get_feedback_table():
    """Get or create feedback table (lazy init)."""
    global _feedback_table
    if _feedback_table is None:
        _feedback_table = get_dynamodb().Table(
            os.environ.get("FEEDBACK_TABLE", "feedback-responses-dev")
        )
    return _feedback_table


def get_feedback_service():
    """Get or create FeedbackService (lazy init)."""
    global _feedback_service
    if _feedback_service is None:
        _feedback_service = FeedbackService(table=get_feedback_table())
    return _feedback_service


def get_dashboard_service():
    """Get or create AdminDashboardService (lazy init)."""
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = AdminDashboardService(get_feedback_service())
    return _dashboard_service


def get_auth_service():
    """Get or create AdminAuthService (lazy init).

    The rate limiter lives on this instance, so attempt counters last as
    long as the process does.
    """
    global _auth_service
    if _auth_service is None:
        _auth_service = AdminAuthService(
            rate_limiter=LoginRateLimiter(),
            admin_username=os.environ.get("ADMIN_USERNAME", "admin"),
            admin_password=os.environ.get("ADMIN_PASSWORD"),
            session_secret=os.environ.get("SESSION_SECRET_KEY"),
            secure_cookies=os.environ.get("ENVIRONMENT") == "production",
        )
    return _auth_service


def get_newsletter_service():
    """Get or create NewsletterService; None when Kit is not configured."""
    global _newsletter_service
    if _newsletter_service is None:
        api_key = os.environ.get("KIT_API_KEY")
        if not api_key:
            return None
        _newsletter_service = NewsletterService(
            client=KitClient(api_key=api_key),
            form_id=os.environ.get("KIT_FORM_ID"),
        )
    return _newsletter_service


def get_admin_secret() -> str | None:
    """Access secret required on admin paths, if configured."""
    return os.environ.get("ADMIN_SECRET_ROUTE") or None


def get_client_id(request: Request) -> str:
    """Identify the caller for rate limiting.

    The socket peer comes first. Without one, the last X-Forwarded-For
    hop (the one the proxy appended) is used.
    """
    if request.client and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[-1]
    return "unknown"


def _no_store(response: Response) -> Response:
    response.headers["Cache-Control"] = CACHE_CONTROL_NO_STORE
    return response


# MARK: - Health Check


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": "1.0.0",
    }


@app.get("/")
async def root():
    """Service banner; unauthorized admin requests land here."""
    return {"service": "feedback-survey", "status": "ok"}


# MARK: - Admin Login Endpoints


@app.post("/api/admin/login")
async def admin_login(login: LoginRequest, request: Request):
    """Check admin credentials and start a session cookie."""
    try:
        auth_service = get_auth_service()
        result = auth_service.attempt_login(
            get_client_id(request), login.username, login.password
        )

        if result.ok:
            response = JSONResponse(
                status_code=status.HTTP_200_OK,
                content={"success": True, "message": result.message},
            )
            response.set_cookie(
                **auth_service.session_cookie(result.token).as_kwargs()
            )
            return _no_store(response)

        if result.reason == LoginFailureReason.TOO_MANY_ATTEMPTS:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "message": result.message},
                headers={"Retry-After": str(result.retry_after)},
            )

        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"success": False, "message": result.message},
        )

    except Exception as e:
        logger.error("Admin login error: %s", e, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )


@app.get("/api/admin/login")
async def admin_session_status(request: Request):
    """Report whether the caller holds a valid admin session."""
    session = get_auth_service().check_session(
        request.cookies.get(SESSION_COOKIE_NAME)
    )
    if session.authenticated:
        return _no_store(
            JSONResponse(
                status_code=status.HTTP_200_OK, content={"authenticated": True}
            )
        )
    return _no_store(
        JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED, content={"authenticated": False}
        )
    )


@app.delete("/api/admin/login")
async def admin_logout():
    """Clear the admin session cookie."""
    response = JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "message": "Logout successful"},
    )
    response.set_cookie(**get_auth_service().revoke_session().as_kwargs())
    return _no_store(response)


# MARK: - Attribution Endpoint


class AttributionCaptureRequest(BaseModel):
    """Page-load details reported by the survey page."""

    landing_page: str | None = Field(None, description="Full URL of the page")
    referrer: str | None = Field(None, description="document.referrer")


def _encode_attribution(raw_json: str) -> str:
    # Unpadded base64url needs no cookie quoting
    return base64.urlsafe_b64encode(raw_json.encode()).decode().rstrip("=")


def _read_attribution_storage(request: Request) -> dict[str, str]:
    """Session storage for attribution, decoded from its cookie."""
    raw = request.cookies.get(ATTRIBUTION_COOKIE_NAME)
    if not raw:
        return {}
    try:
        padded = raw + "=" * (-len(raw) % 4)
        return {STORAGE_KEY: base64.urlsafe_b64decode(padded.encode()).decode()}
    except ValueError:
        logger.info("Ignoring undecodable attribution cookie")
        return {}


@app.post("/api/v1/attribution")
async def capture_attribution(capture: AttributionCaptureRequest, request: Request):
    """Capture UTM attribution for this browser session."""
    storage = _read_attribution_storage(request)
    before = storage.get(STORAGE_KEY)

    snapshot = AttributionTracker(storage).capture(
        capture.landing_page, capture.referrer
    )

    response = JSONResponse(content=snapshot.model_dump())
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    if storage.get(STORAGE_KEY) != before:
        # No max_age: the cookie ends with the browser session
        response.set_cookie(
            key=ATTRIBUTION_COOKIE_NAME,
            value=_encode_attribution(storage[STORAGE_KEY]),
            httponly=True,
            secure=os.environ.get("ENVIRONMENT") == "production",
            samesite="lax",
            path="/",
        )
    return response


# MARK: - Feedback Endpoints


@app.post("/api/v1/feedback/steps/{step}/validate")
async def validate_feedback_step(
    draft: FeedbackDraft, step: int = Path(..., ge=1, le=4)
):
    """Validate one wizard step of a draft."""
    errors = validate_step(draft, step)
    return {"step": step, "valid": not errors, "errors": errors}


@app.post("/api/v1/feedback", status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    submission: FeedbackSubmission,
    request: Request,
    background_tasks: BackgroundTasks,
):
    """Submit a completed survey."""
    step, errors = validate_draft(submission)
    if errors:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation failed", "step": step, "errors": errors},
        )

    attribution = AttributionTracker(_read_attribution_storage(request)).current()

    try:
        record = get_feedback_service().submit(submission, attribution)
    except StorageError as e:
        logger.error("Error submitting feedback: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=SUBMIT_ERROR_MESSAGE,
        )

    newsletter_service = get_newsletter_service()
    if newsletter_service is not None:
        background_tasks.add_task(newsletter_service.forward_safely, record)

    return {
        "id": record.id,
        "status": "received",
        "message": "Thank you for your feedback!",
    }


# MARK: - Newsletter Endpoint


class KitSubscribeRequest(BaseModel):
    """Request body for a direct newsletter subscription."""

    email: str | None = None
    name: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    referrer: str | None = None


@app.post("/api/kit/subscribe")
async def kit_subscribe(subscription: KitSubscribeRequest):
    """Subscribe an address to the newsletter with custom fields."""
    if not subscription.email:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Email is required"},
        )

    newsletter_service = get_newsletter_service()
    if newsletter_service is None:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Newsletter integration not configured"},
        )

    fields = {
        key: str(value)
        for key, value in subscription.fields.items()
        if value is not None
    }
    try:
        data = newsletter_service.subscribe(
            email=subscription.email,
            name=subscription.name,
            fields=fields,
            referrer=subscription.referrer,
        )
    except IntegrationError as e:
        logger.error("Kit subscribe error: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)},
        )

    return {"ok": True, "kit": data}


# MARK: - Admin Dashboard Endpoints


@app.get("/admin/login")
async def admin_login_page(request: Request):
    """Login page data; logged-in admins go straight to the dashboard."""
    session = get_auth_service().check_session(
        request.cookies.get(SESSION_COOKIE_NAME)
    )
    if session.authenticated:
        return RedirectResponse(
            dashboard_url(get_admin_secret()),
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )
    return _no_store(
        JSONResponse(
            content={"authenticated": False, "login_endpoint": "/api/admin/login"}
        )
    )


def _page_payload(page, stats) -> dict[str, Any]:
    return {
        "records": [record.model_dump() for record in page.records],
        "page": page.page,
        "total_pages": page.total_pages,
        "total": page.total,
        "stats": stats.to_dict(),
    }


@app.get("/admin")
async def admin_dashboard():
    """Dashboard summary: stats and the first page of responses."""
    page, stats = get_dashboard_service().list_page()
    payload = _page_payload(page, stats)
    payload["firm_profiles"] = [ALL_FIRMS] + [choice.value for choice in FirmProfile]
    return _no_store(JSONResponse(content=payload))


@app.get("/admin/feedback")
async def list_feedback(
    search: str | None = Query(None, max_length=200),
    firm: str = Query(ALL_FIRMS),
    page: int = Query(1),
):
    """Search, filter and page through feedback responses."""
    page_data, stats = get_dashboard_service().list_page(
        search_term=search, firm_filter=firm, page=page
    )
    return _no_store(JSONResponse(content=_page_payload(page_data, stats)))


@app.get("/admin/feedback/export")
async def export_feedback(
    search: str | None = Query(None, max_length=200),
    firm: str = Query(ALL_FIRMS),
):
    """Download the filtered responses as CSV."""
    content = get_dashboard_service().export(search_term=search, firm_filter=firm)
    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{csv_filename()}"',
            "Cache-Control": CACHE_CONTROL_NO_STORE,
        },
    )


@app.get("/admin/feedback/{record_id}")
async def get_feedback(record_id: str):
    """Full details of one response."""
    record = get_dashboard_service().get_record(record_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feedback {record_id} not found",
        )
    return _no_store(JSONResponse(content=record.model_dump()))


# MARK: - Error Handlers


@app.exception_handler(ClientError)
async def aws_client_error_handler(request, exc: ClientError):
    """Handle AWS client errors."""
    error_message = exc.response["Error"]["Message"]
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"AWS error: {error_message}"},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle value errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


# MARK: - Lambda Handler

# Create the Lambda handler
api_handler = Mangum(app, lifespan="off")


# For local development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
