"""Unit tests for core.sanitizer: identifier grammar over request-value trees."""

import pytest

from app.core.errors import ErrorClass, ValidationError
from app.core.sanitizer import is_identifier, validate


class TestIsIdentifier:
    @pytest.mark.parametrize("value", ["a", "users", "Orders_2024", "x1_y2"])
    def test_valid(self, value):
        assert is_identifier(value)

    @pytest.mark.parametrize(
        "value",
        ["", "1abc", "_hidden", "a b", "a-b", "a;", "x'); DROP TABLE users;--", "é"],
    )
    def test_invalid(self, value):
        assert not is_identifier(value)

    def test_non_string(self):
        assert not is_identifier(1)
        assert not is_identifier(None)

    def test_trailing_newline_rejected(self):
        # $ alone would accept "abc\n"
        assert not is_identifier("abc\n")


class TestValidate:
    def test_scalars_accepted(self):
        validate({"table": "orders", "n": 1, "f": 1.5, "flag": True, "none": None})

    def test_nested_map_accepted(self):
        validate({"body": {"id": "int", "name": "text", "meta": {"deep": "ok"}}})

    def test_bad_string_value(self):
        with pytest.raises(ValidationError) as exc:
            validate({"table": "orders; DROP TABLE users"})
        assert exc.value.error_class == ErrorClass.BAD_REQUEST
        assert "table" in exc.value.message

    def test_bad_key(self):
        with pytest.raises(ValidationError):
            validate({"body": {"bad key": "text"}})

    def test_bad_value_in_later_entry_of_nested_map(self):
        # Every entry is checked, not just the first nested map
        with pytest.raises(ValidationError) as exc:
            validate({"a": {"x": "ok"}, "b": {"y": "x'); DROP TABLE users;--"}})
        assert "b.y" in exc.value.message

    def test_list_rejected(self):
        with pytest.raises(ValidationError):
            validate({"cols": ["a", "b"]})

    def test_non_finite_float_rejected(self):
        with pytest.raises(ValidationError):
            validate({"n": float("nan")})

    def test_empty_ok(self):
        validate({})
