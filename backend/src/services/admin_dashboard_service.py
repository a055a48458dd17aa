"""Admin dashboard: statistics, search, pagination and CSV export."""

import logging
import math
import re
from dataclasses import asdict, dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from models.feedback import FeedbackRecord
from services.feedback_service import FeedbackService, StorageError

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
ALL_FIRMS = "all"

_LEADING_DIGITS = re.compile(r"^(\d+)")

CSV_HEADERS = [
    "ID",
    "Email",
    "Name",
    "Overall Usefulness",
    "Client Communication Impact",
    "Reliability",
    "Value Perception",
    "Next Tools",
    "Firm Profile",
    "Early Access Invitation",
    "Created At",
    "UTM Source",
    "UTM Medium",
    "UTM Campaign",
    "UTM Term",
    "UTM Content",
    "Referrer",
    "Landing Page",
]


@dataclass
class DashboardStats:
    """Aggregate numbers shown above the responses table."""

    total: int = 0
    avg_usefulness: float = 0
    avg_reliability: float = 0
    early_access_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Page:
    """One page of filtered records."""

    records: list[FeedbackRecord]
    page: int
    total_pages: int
    total: int


def extract_rating(value: Any) -> int | float:
    """Numeric rating from a stored value.

    Numbers pass through; strings such as "10 yes_noticeably" yield their
    leading digits; anything else counts as 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value

    match = _LEADING_DIGITS.match(str(value))
    if match:
        return int(match.group(1))
    return 0


def _round_half_up(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_stats(records: list[FeedbackRecord]) -> DashboardStats:
    """Totals and rating averages (rounded half up to one decimal)."""
    total = len(records)
    if total == 0:
        return DashboardStats()

    usefulness = sum(extract_rating(r.overall_usefulness) for r in records) / total
    reliability = sum(extract_rating(r.reliability) for r in records) / total

    return DashboardStats(
        total=total,
        avg_usefulness=_round_half_up(usefulness),
        avg_reliability=_round_half_up(reliability),
        early_access_count=sum(
            1 for r in records if r.early_access_invitation == "yes"
        ),
    )


def filter_records(
    records: list[FeedbackRecord],
    search_term: str | None = None,
    firm_filter: str | None = ALL_FIRMS,
) -> list[FeedbackRecord]:
    """Case-insensitive search over name, email and firm, plus an exact firm filter."""
    filtered = records

    term = (search_term or "").lower()
    if term:
        filtered = [
            r
            for r in filtered
            if term in (r.name or "").lower()
            or term in (r.email or "").lower()
            or term in (r.firm_profile or "").lower()
        ]

    if firm_filter and firm_filter != ALL_FIRMS:
        filtered = [r for r in filtered if r.firm_profile == firm_filter]

    return filtered


def paginate(
    records: list[FeedbackRecord], page: int = 1, page_size: int = PAGE_SIZE
) -> Page:
    """Slice out one page; ``page`` is clamped into the valid range."""
    total_pages = max(1, math.ceil(len(records) / page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size
    return Page(
        records=records[start : start + page_size],
        page=page,
        total_pages=total_pages,
        total=len(records),
    )


def _quoted(value: Any) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def _plain(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(char in text for char in ',"\n\r'):
        return _quoted(text)
    return text


def export_csv(records: list[FeedbackRecord]) -> str:
    """Render records as CSV with a fixed column order."""
    lines = [",".join(CSV_HEADERS)]
    for r in records:
        row = [
            _plain(r.id),
            _plain(r.email),
            _quoted(r.name),
            _quoted(r.overall_usefulness),
            _quoted(r.client_communication_impact),
            _quoted(r.reliability),
            _quoted(r.value_perception),
            _quoted("; ".join(r.next_tools or [])),
            _plain(r.firm_profile),
            _plain(r.early_access_invitation),
            _plain(r.created_at),
            _plain(r.utm_source),
            _plain(r.utm_medium),
            _plain(r.utm_campaign),
            _plain(r.utm_term),
            _plain(r.utm_content),
            _plain(r.referrer),
            _plain(r.landing_page),
        ]
        lines.append(",".join(row))
    return "\n".join(lines)


def csv_filename(today: date | None = None) -> str:
    """Download name for an export, e.g. feedback_responses_2026-01-31.csv."""
    today = today or date.today()
    return f"feedback_responses_{today.isoformat()}.csv"


class AdminDashboardService:
    """Loads records for the admin dashboard."""

    def __init__(self, feedback_service: FeedbackService):
        self.feedback_service = feedback_service

    def load_all(self) -> list[FeedbackRecord]:
        """All records, newest first; empty when storage is unavailable."""
        try:
            return self.feedback_service.list_all()
        except StorageError as e:
            logger.error("Error fetching feedback data: %s", e)
            return []

    def get_record(self, record_id: str) -> FeedbackRecord | None:
        """A single record for the details view."""
        for record in self.load_all():
            if record.id == record_id:
                return record
        return None

    def list_page(
        self,
        search_term: str | None = None,
        firm_filter: str | None = ALL_FIRMS,
        page: int = 1,
    ) -> tuple[Page, DashboardStats]:
        """Filtered page of records with stats over the full set."""
        records = self.load_all()
        filtered = filter_records(records, search_term, firm_filter)
        return paginate(filtered, page), compute_stats(records)

    def export(
        self, search_term: str | None = None, firm_filter: str | None = ALL_FIRMS
    ) -> str:
        """CSV of the currently filtered records."""
        return export_csv(filter_records(self.load_all(), search_term, firm_filter))
