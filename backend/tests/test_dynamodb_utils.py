"""Tests for DynamoDB utility functions."""

from decimal import Decimal

import pytest

from utils.dynamodb_utils import (
    decimal_to_python,
    parse_from_dynamodb,
    parse_items_from_dynamodb,
    prepare_for_dynamodb,
    python_to_decimal,
)


class TestDecimalToPython:
    """Tests for decimal_to_python function."""

    def test_whole_decimal_becomes_int(self):
        """Ratings come back from DynamoDB as whole Decimals."""
        result = decimal_to_python(Decimal("8"))
        assert result == 8
        assert isinstance(result, int)

    def test_fractional_decimal_becomes_float(self):
        result = decimal_to_python(Decimal("7.5"))
        assert result == 7.5
        assert isinstance(result, float)

    def test_converts_nested_dict(self):
        data = {"overall_usefulness": Decimal("9"), "meta": {"score": Decimal("0.25")}}

        result = decimal_to_python(data)

        assert result == {"overall_usefulness": 9, "meta": {"score": 0.25}}

    def test_converts_list(self):
        assert decimal_to_python([Decimal("1.5"), Decimal("2"), "x"]) == [1.5, 2, "x"]

    def test_string_set_becomes_sorted_list(self):
        result = decimal_to_python({"review_referral_builder", "intake_application"})
        assert result == ["intake_application", "review_referral_builder"]

    def test_preserves_other_values(self):
        assert decimal_to_python("yes") == "yes"
        assert decimal_to_python(None) is None
        assert decimal_to_python(True) is True


class TestPythonToDecimal:
    """Tests for python_to_decimal function."""

    def test_converts_int(self):
        result = python_to_decimal(10)
        assert result == Decimal("10")
        assert isinstance(result, Decimal)

    def test_converts_float(self):
        assert python_to_decimal(3.14) == Decimal("3.14")

    def test_float_precision_is_rounded(self):
        result = python_to_decimal(0.1 + 0.2)
        assert float(result) == pytest.approx(0.3, abs=1e-6)

    def test_converts_nested_structures(self):
        result = python_to_decimal({"ratings": [8, 9], "nested": {"avg": 8.5}})

        assert result["ratings"] == [Decimal("8"), Decimal("9")]
        assert result["nested"]["avg"] == Decimal("8.5")

    def test_tuple_becomes_list(self):
        assert python_to_decimal((1, "a")) == [Decimal("1"), "a"]

    def test_preserves_booleans(self):
        assert python_to_decimal(True) is True
        assert python_to_decimal(False) is False

    def test_preserves_strings_and_none(self):
        assert python_to_decimal("solo") == "solo"
        assert python_to_decimal(None) is None


class TestPrepareForDynamodb:
    """Tests for prepare_for_dynamodb function."""

    def test_prepares_feedback_item(self):
        data = {
            "id": "01HZZZ0000000000000000000A",
            "email": "jane@lawfirm.com",
            "overall_usefulness": 8,
            "reliability": 9,
            "next_tools": ["missed_call_agent"],
            "utm_source": "newsletter",
            "utm_term": None,
        }

        result = prepare_for_dynamodb(data)

        assert result["overall_usefulness"] == Decimal("8")
        assert result["reliability"] == Decimal("9")
        assert result["next_tools"] == ["missed_call_agent"]
        assert result["utm_source"] == "newsletter"

    def test_drops_none_values(self):
        result = prepare_for_dynamodb({"id": "x", "referrer": None, "utm_term": None})
        assert result == {"id": "x"}

    def test_keeps_empty_strings(self):
        assert prepare_for_dynamodb({"name": ""}) == {"name": ""}


class TestParseFromDynamodb:
    """Tests for parse_from_dynamodb and parse_items_from_dynamodb."""

    def test_parses_feedback_item(self):
        item = {
            "id": "01HZZZ0000000000000000000A",
            "overall_usefulness": Decimal("10"),
            "reliability": Decimal("7"),
            "firm_profile": "solo",
        }

        result = parse_from_dynamodb(item)

        assert result["overall_usefulness"] == 10
        assert isinstance(result["reliability"], int)
        assert result["firm_profile"] == "solo"

    def test_parses_list_of_items(self):
        items = [
            {"id": "a", "reliability": Decimal("5")},
            {"id": "b", "reliability": Decimal("6")},
        ]

        result = parse_items_from_dynamodb(items)

        assert [item["reliability"] for item in result] == [5, 6]

    def test_parses_empty_list(self):
        assert parse_items_from_dynamodb([]) == []
