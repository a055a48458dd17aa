"""UTM attribution capture and per-session persistence."""

import logging
from collections.abc import MutableMapping
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError

from models.feedback import ATTRIBUTION_FIELDS, AttributionSnapshot

logger = logging.getLogger(__name__)

UTM_PARAMS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")
STORAGE_KEY = "utm_params"

# Keeps the encoded snapshot well under the 4 KB browser cookie limit
MAX_URL_LENGTH = 800
MAX_PARAM_LENGTH = 100


def capture_attribution(
    landing_page: str | None, referrer: str | None = None
) -> AttributionSnapshot:
    """Build a snapshot from the landing page URL and document referrer.

    Blank query values and a blank referrer are treated as absent. Long
    values are truncated so the snapshot fits in a cookie.
    """
    query = parse_qs(urlsplit(landing_page or "").query)
    values = {}
    for param in UTM_PARAMS:
        found = [value.strip() for value in query.get(param, []) if value.strip()]
        values[param] = found[0][:MAX_PARAM_LENGTH] if found else None

    return AttributionSnapshot(
        **values,
        referrer=(referrer or "").strip()[:MAX_URL_LENGTH] or None,
        landing_page=(landing_page or "")[:MAX_URL_LENGTH] or None,
    )


def merge_attribution(
    stored: AttributionSnapshot, incoming: AttributionSnapshot
) -> AttributionSnapshot:
    """Merge a new capture into the stored snapshot, field by field.

    A non-empty incoming value wins; an empty one never clears a stored
    value.
    """
    merged = {
        field: getattr(incoming, field) or getattr(stored, field)
        for field in ATTRIBUTION_FIELDS
    }
    return AttributionSnapshot(**merged)


class AttributionTracker:
    """Keeps the session's attribution snapshot in session-scoped storage.

    ``storage`` is any string mapping that lives as long as the browser
    session (the API backs it with a session cookie).
    """

    def __init__(self, storage: MutableMapping[str, str]):
        """Initialize the tracker with session storage."""
        self.storage = storage

    def load(self) -> AttributionSnapshot | None:
        """Stored snapshot, or None when absent or unreadable."""
        raw = self.storage.get(STORAGE_KEY)
        if not raw:
            return None
        try:
            return AttributionSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable attribution snapshot: %s", e)
            return None

    def save(self, snapshot: AttributionSnapshot) -> None:
        """Persist a snapshot."""
        self.storage[STORAGE_KEY] = snapshot.model_dump_json(exclude_none=True)

    def capture(
        self, landing_page: str | None, referrer: str | None = None
    ) -> AttributionSnapshot:
        """Capture attribution for a page load and persist it if it changed.

        Returns:
            The session's current snapshot
        """
        incoming = capture_attribution(landing_page, referrer)
        stored = self.load()

        if stored is None:
            self.save(incoming)
            return incoming

        merged = merge_attribution(stored, incoming)
        if merged != stored:
            self.save(merged)
        return merged

    def current(self) -> AttributionSnapshot:
        """Snapshot to attach to a submission (empty when nothing was captured)."""
        return self.load() or AttributionSnapshot()
