"""Newsletter (Kit) integration for survey respondents."""

import logging
import os
from typing import Any

import requests

from models.feedback import FeedbackRecord

logger = logging.getLogger(__name__)

KIT_API_URL = "https://api.kit.com/v4"
REQUEST_TIMEOUT_SECONDS = 10


class IntegrationError(Exception):
    """Newsletter provider call failed."""

    pass


class KitClient:
    """Thin client for the Kit v4 subscribers and forms API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = KIT_API_URL,
        session: requests.Session | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Kit API key
            base_url: API root, overridable for tests
            session: Optional requests session (for testing)
        """
        self.api_key = api_key or os.environ.get("KIT_API_KEY")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, payload: dict) -> dict[str, Any]:
        """Send a JSON request and return the decoded body.

        Raises:
            IntegrationError: On transport errors or non-2xx responses
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "X-Kit-Api-Key": self.api_key or "",
                },
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            raise IntegrationError(f"Kit request to {path} failed: {str(e)}")

        if not response.ok:
            raise IntegrationError(
                f"Kit {path} returned {response.status_code}: {response.text}"
            )

        try:
            return response.json()
        except ValueError:
            return {}

    def upsert_subscriber(
        self, email: str, name: str | None, custom_fields: dict[str, str]
    ) -> dict[str, Any]:
        """Create or update a subscriber with custom fields."""
        payload = {"email_address": email, "first_name": name or None}
        payload.update(custom_fields)
        return self._request("POST", "/subscribers", payload)

    def update_custom_fields(
        self, subscriber_id: int | str, fields: dict[str, str]
    ) -> dict[str, Any]:
        """Overwrite custom fields on an existing subscriber."""
        return self._request(
            "PUT", f"/subscribers/{subscriber_id}", {"fields": fields}
        )

    def add_to_form(
        self, form_id: str, email: str, referrer: str | None = None
    ) -> dict[str, Any]:
        """Add a subscriber to a form; Kit derives UTM data from the referrer."""
        return self._request(
            "POST",
            f"/forms/{form_id}/subscribers",
            {"email_address": email, "referrer": referrer or None},
        )


def build_custom_fields(record: FeedbackRecord) -> dict[str, str]:
    """Map a feedback record onto Kit custom fields (all values are strings)."""
    fields = {
        "overall_usefulness": record.overall_usefulness,
        "client_communication_impact": record.client_communication_impact,
        "reliability": record.reliability,
        "value_perception": record.value_perception,
        "next_tools": "; ".join(record.next_tools),
        "firm_profile": record.firm_profile,
        "early_access_invitation": record.early_access_invitation,
        "utm_source": record.utm_source,
        "utm_medium": record.utm_medium,
        "utm_campaign": record.utm_campaign,
        "utm_term": record.utm_term,
        "utm_content": record.utm_content,
    }
    return {
        key: str(value) for key, value in fields.items() if value not in (None, "")
    }


class NewsletterService:
    """Forwards survey respondents to the newsletter provider."""

    def __init__(self, client: KitClient, form_id: str | None = None):
        """Initialize the service.

        Args:
            client: Kit API client
            form_id: Kit form that new respondents join
        """
        self.client = client
        self.form_id = form_id or os.environ.get("KIT_FORM_ID")

    def subscribe(
        self,
        email: str,
        name: str | None = None,
        fields: dict[str, str] | None = None,
        referrer: str | None = None,
    ) -> dict[str, Any]:
        """Upsert a subscriber, refresh its custom fields, and add it to the form.

        A failed custom-field refresh is only logged; the other two calls
        must succeed.

        Returns:
            The add-to-form response (empty when no form is configured)

        Raises:
            IntegrationError: If the upsert or add-to-form call fails
        """
        fields = fields or {}
        subscriber_data = self.client.upsert_subscriber(email, name, fields)

        subscriber_id = (subscriber_data.get("subscriber") or {}).get("id")
        if subscriber_id and fields:
            try:
                self.client.update_custom_fields(subscriber_id, fields)
            except IntegrationError as e:
                logger.warning("Kit custom field update failed: %s", e)

        if not self.form_id:
            logger.info("KIT_FORM_ID not configured, skipping form subscription")
            return {}

        return self.client.add_to_form(self.form_id, email, referrer)

    def forward(self, record: FeedbackRecord) -> None:
        """Send a stored record to the newsletter.

        Raises:
            IntegrationError: If the provider rejects the subscriber
        """
        self.subscribe(
            email=record.email,
            name=record.name,
            fields=build_custom_fields(record),
            referrer=record.landing_page or record.referrer,
        )

    def forward_safely(self, record: FeedbackRecord) -> bool:
        """Best-effort ``forward``: failures are logged, never raised."""
        try:
            self.forward(record)
            return True
        except IntegrationError as e:
            logger.error("Newsletter forward failed for %s: %s", record.id, e)
            return False
