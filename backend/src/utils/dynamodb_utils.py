"""DynamoDB type conversion utilities.

DynamoDB stores numbers as Decimal and rejects Python floats, while the
feedback models use plain ints. These helpers convert between the two.
"""

from decimal import Decimal
from typing import Any


def decimal_to_python(obj: Any) -> Any:
    """Recursively convert Decimal values to int (whole) or float."""
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    elif isinstance(obj, dict):
        return {key: decimal_to_python(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [decimal_to_python(item) for item in obj]
    elif isinstance(obj, set):
        # String sets come back from DynamoDB as Python sets
        return sorted(decimal_to_python(item) for item in obj)
    return obj


def python_to_decimal(obj: Any) -> Any:
    """Recursively convert int/float values to Decimal (bools are left alone)."""
    if isinstance(obj, float):
        return Decimal(str(round(obj, 6)))
    elif isinstance(obj, int) and not isinstance(obj, bool):
        return Decimal(obj)
    elif isinstance(obj, dict):
        return {key: python_to_decimal(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [python_to_decimal(item) for item in obj]
    return obj


def prepare_for_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """
    Prepare a record dict for ``put_item``.

    Drops attributes that are None so optional attribution fields are
    simply absent, and converts numbers to Decimal.

    Args:
        item: Dictionary to store

    Returns:
        Dictionary safe to pass as ``Item``
    """
    present = {key: value for key, value in item.items() if value is not None}
    return python_to_decimal(present)


def parse_from_dynamodb(item: dict[str, Any]) -> dict[str, Any]:
    """Parse a DynamoDB item to Python-native types."""
    return decimal_to_python(item)


def parse_items_from_dynamodb(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Parse a list of DynamoDB items to Python-native types."""
    return [parse_from_dynamodb(item) for item in items]
