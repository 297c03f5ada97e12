"""
Jinja2 filters for building comma-separated SQL lists from a key/value map.

The keys are spliced as identifiers, the values never are: ``placeholders``
and ``assignments`` emit ``:key`` bound placeholders so the values travel
through the driver. Keys are re-checked against the identifier grammar in
case a filter is applied to something the sanitizer never saw.

Template usage::

    INSERT INTO {{ table }} ({{ body | columns }}) VALUES ({{ body | placeholders }})
    UPDATE {{ table }} SET {{ body | assignments }} WHERE id = :id
"""

from typing import Any

from app.core.errors import ValidationError
from app.core.sanitizer import IDENTIFIER_PATTERN, is_identifier


def _keys(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, dict):
        raise ValidationError(
            f"expected a key/value map for a column list, got {type(value).__name__}"
        )
    keys = list(value.keys())
    for k in keys:
        if not is_identifier(k):
            raise ValidationError(f"column '{k}' must match /{IDENTIFIER_PATTERN}/")
    return keys


def columns(value: Any) -> str:
    """``{"a": 1, "b": 2}`` -> ``a, b``"""
    return ", ".join(_keys(value))


def placeholders(value: Any) -> str:
    """``{"a": 1, "b": 2}`` -> ``:a, :b``"""
    return ", ".join(f":{k}" for k in _keys(value))


def assignments(value: Any) -> str:
    """``{"a": 1, "b": 2}`` -> ``a = :a, b = :b``"""
    return ", ".join(f"{k} = :{k}" for k in _keys(value))


def column_types(value: Any) -> str:
    """``{"id": "int", "name": "text"}`` -> ``id int, name text``

    Types are spliced too, so they must be sanitized identifiers as well.
    """
    parts = []
    for k in _keys(value):
        t = value[k]
        if not is_identifier(t):
            raise ValidationError(f"type of column '{k}' must match /{IDENTIFIER_PATTERN}/")
        parts.append(f"{k} {t}")
    return ", ".join(parts)


SQL_FILTERS: dict[str, Any] = {
    "columns": columns,
    "placeholders": placeholders,
    "assignments": assignments,
    "column_types": column_types,
}
