"""
Identifier sanitizer for values spliced into SQL text.

Template-expansion params and the caller identity end up as literal SQL
(table/column/role names), so every string leaf and every map key must match
the identifier grammar. Bound params never pass through here; the driver
escapes them.

Usage::

    validate({"table": "orders", "body": {"id": 1}})   # ok
    validate({"type": "int); DROP TABLE users;--"})    # ValidationError
"""

import math
import re
from typing import Any

from app.core.errors import ValidationError

IDENTIFIER_PATTERN = "^[A-Za-z][A-Za-z0-9_]*$"

_IDENTIFIER = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


def is_identifier(value: Any) -> bool:
    """True if *value* is a str that fully matches the identifier grammar."""
    return isinstance(value, str) and _IDENTIFIER.fullmatch(value) is not None


def _fail(path: str, value: Any) -> ValidationError:
    return ValidationError(f"'{path}' = {value!r} must match /{IDENTIFIER_PATTERN}/")


def _walk(value: Any, path: str) -> None:
    if value is None or isinstance(value, bool):
        return
    if isinstance(value, str):
        if not is_identifier(value):
            raise _fail(path, value)
        return
    if isinstance(value, int):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise _fail(path, value)
        return
    if isinstance(value, dict):
        for k, v in value.items():
            key_path = f"{path}.{k}" if path else str(k)
            if not is_identifier(k):
                raise ValidationError(
                    f"key '{key_path}' must match /{IDENTIFIER_PATTERN}/"
                )
            _walk(v, key_path)
        return
    raise ValidationError(
        f"'{path}' has unsupported type {type(value).__name__} for SQL text"
    )


def validate(value: Any) -> None:
    """Walk a request-value tree; raise ``ValidationError`` on the first violation.

    Accepts str, int, float, bool, None and dicts of those. Lists and other
    types cannot be spliced into SQL text and are rejected.
    """
    _walk(value, "")
