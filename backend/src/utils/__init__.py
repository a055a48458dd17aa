"""Utility functions for the Feedback Survey backend."""

from .dynamodb_utils import (
    decimal_to_python,
    parse_from_dynamodb,
    parse_items_from_dynamodb,
    prepare_for_dynamodb,
    python_to_decimal,
)
