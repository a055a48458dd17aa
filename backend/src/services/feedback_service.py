"""Feedback storage service."""

import logging
from datetime import UTC, datetime

from botocore.exceptions import ClientError
from pydantic import ValidationError
from ulid import ULID

from models.feedback import AttributionSnapshot, FeedbackDraft, FeedbackRecord
from utils.dynamodb_utils import parse_items_from_dynamodb, prepare_for_dynamodb

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Feedback storage failure."""

    pass


class FeedbackService:
    """Service for storing and listing feedback records."""

    def __init__(self, table):
        """Initialize the service with a DynamoDB table."""
        self.table = table

    def build_record(
        self, draft: FeedbackDraft, attribution: AttributionSnapshot | None = None
    ) -> FeedbackRecord:
        """Combine survey answers with session attribution into a new record."""
        now = datetime.now(UTC).isoformat()
        attribution = attribution or AttributionSnapshot()
        return FeedbackRecord(
            id=str(ULID()),
            email=draft.email.strip(),
            name=draft.name.strip(),
            overall_usefulness=draft.overall_usefulness,
            client_communication_impact=draft.client_communication_impact,
            reliability=draft.reliability,
            value_perception=draft.value_perception,
            next_tools=list(draft.next_tools),
            firm_profile=draft.firm_profile,
            early_access_invitation=draft.early_access_invitation,
            created_at=now,
            updated_at=now,
            **attribution.model_dump(),
        )

    def insert(self, record: FeedbackRecord) -> FeedbackRecord:
        """Store a new record.

        Raises:
            StorageError: If the write fails
        """
        try:
            self.table.put_item(Item=prepare_for_dynamodb(record.model_dump()))
        except ClientError as e:
            raise StorageError(f"Failed to store feedback {record.id}: {str(e)}")
        logger.info("Stored feedback %s", record.id)
        return record

    def submit(
        self, draft: FeedbackDraft, attribution: AttributionSnapshot | None = None
    ) -> FeedbackRecord:
        """Build and store a record for a completed survey."""
        return self.insert(self.build_record(draft, attribution))

    def list_all(self) -> list[FeedbackRecord]:
        """All records, newest first.

        Raises:
            StorageError: If the table cannot be read
        """
        try:
            response = self.table.scan()
            items = response.get("Items", [])

            # Handle pagination
            while "LastEvaluatedKey" in response:
                response = self.table.scan(
                    ExclusiveStartKey=response["LastEvaluatedKey"]
                )
                items.extend(response.get("Items", []))
        except ClientError as e:
            raise StorageError(f"Failed to list feedback: {str(e)}")

        records = []
        for item in parse_items_from_dynamodb(items):
            try:
                records.append(FeedbackRecord(**item))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed feedback item %s: %s", item.get("id"), e
                )

        records.sort(key=lambda record: record.created_at, reverse=True)
        return records
