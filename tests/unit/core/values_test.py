"""Unit tests for value helpers."""

import math

import pytest
from pydantic import BaseModel

from stringcost.core.values import (
    coerce_metadata,
    sanitize_number,
    serialize_error,
    summarize_input,
)


class Sample(BaseModel):
    prompt: str
    branches: int = 3


class TestSanitizeNumber:
    """Test sanitize_number."""

    @pytest.mark.parametrize(
        "value, expected",
        [(1, 1.0), (0.25, 0.25), (-2, -2.0), (0, 0.0)],
    )
    def test_finite_numbers_pass_through(self, value, expected):
        assert sanitize_number(value, 9.0) == expected

    @pytest.mark.parametrize(
        "value", [None, math.nan, math.inf, -math.inf, "3", True, False, [1], 10**400]
    )
    def test_unusable_values_fall_back(self, value):
        assert sanitize_number(value, 9.0) == 9.0


class TestCoerceMetadata:
    """Test coerce_metadata."""

    def test_plain_values_kept(self):
        data = {"a": 1, "b": "x", "c": None, "d": True, "e": 0.5}
        assert coerce_metadata(data) == data

    def test_nested_and_odd_values(self):
        """Test conversion of tuples, models, non-finite floats and objects."""
        result = coerce_metadata(
            {
                1: (1, 2),
                "model": Sample(prompt="p"),
                "nan": math.nan,
                "obj": object,
                "nested": {"x": [math.inf]},
            }
        )
        assert result["1"] == [1, 2]
        assert result["model"] == {"prompt": "p", "branches": 3}
        assert result["nan"] is None
        assert result["obj"] == str(object)
        assert result["nested"] == {"x": [None]}

    def test_empty(self):
        assert coerce_metadata(None) == {}
        assert coerce_metadata({}) == {}


class TestSerializeError:
    """Test serialize_error."""

    def test_exception(self):
        assert serialize_error(ValueError("bad input")) == {
            "name": "ValueError",
            "message": "bad input",
        }

    def test_non_exception(self):
        assert serialize_error("boom") == {"message": "boom"}


class TestSummarizeInput:
    """Test summarize_input."""

    def test_short_string_unchanged(self):
        assert summarize_input("coffee") == "coffee"

    def test_long_string_truncated(self):
        preview = summarize_input("x" * 200, max_length=20)
        assert preview == "x" * 17 + "..."
        assert len(preview) == 20

    def test_model_summarized_by_fields(self):
        assert summarize_input(Sample(prompt="a" * 500)) == "Sample(prompt,branches)"

    def test_mapping_summarized_by_keys(self):
        keys = {f"k{i}": i for i in range(7)}
        assert summarize_input(keys) == "dict(k0,k1,k2,k3,k4,…)"
        assert summarize_input({"a": 1}) == "dict(a)"

    def test_sequence_summarized_by_length(self):
        assert summarize_input([1, 2, 3]) == "list(3)"
        assert summarize_input((1,)) == "tuple(1)"

    def test_scalars_and_objects(self):
        assert summarize_input(None) is None
        assert summarize_input(5) == 5
        assert summarize_input(object()) == "<object>"
