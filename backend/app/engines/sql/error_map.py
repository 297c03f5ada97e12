"""
Backend error classification.

One lookup table per backend maps native error codes to an ``ErrorClass``.
Codes absent from the table (and exceptions that are not driver errors at all)
classify as Internal. The native message is kept for diagnostics only.
"""

import sqlite3
from typing import Any

import psycopg
import pymysql

from app.core.errors import ErrorClass

_NF = ErrorClass.NOT_FOUND
_FB = ErrorClass.FORBIDDEN
_BR = ErrorClass.BAD_REQUEST
_UA = ErrorClass.UNAUTHORIZED

# ---------------------------------------------------------------------------
# PostgreSQL: SQLSTATE
# ---------------------------------------------------------------------------

POSTGRES_ERROR_CLASSES: dict[str, ErrorClass] = {
    "42P01": _NF,  # undefined_table
    "42704": _NF,  # undefined_object (e.g. DROP ROLE on a missing role)
    "42883": _NF,  # undefined_function
    "3D000": _NF,  # invalid_catalog_name
    "3F000": _NF,  # invalid_schema_name
    "42501": _FB,  # insufficient_privilege
    "28000": _UA,  # invalid_authorization_specification
    "28P01": _UA,  # invalid_password
    "0LP01": _UA,  # invalid_grant_operation
    "42601": _BR,  # syntax_error
    "42703": _BR,  # undefined_column
    "42710": _BR,  # duplicate_object (e.g. CREATE ROLE on an existing role)
    "42P06": _BR,  # duplicate_schema
    "42P07": _BR,  # duplicate_table
    "42804": _BR,  # datatype_mismatch
    "23000": _BR,  # integrity_constraint_violation
    "23502": _BR,  # not_null_violation
    "23503": _BR,  # foreign_key_violation
    "23505": _BR,  # unique_violation
    "23514": _BR,  # check_violation
    "22001": _BR,  # string_data_right_truncation
    "22003": _BR,  # numeric_value_out_of_range
    "22007": _BR,  # invalid_datetime_format
    "22008": _BR,  # datetime_field_overflow
    "22012": _BR,  # division_by_zero
    "22P02": _BR,  # invalid_text_representation
}

# ---------------------------------------------------------------------------
# SQLite: result codes (extended first, then primary = code & 0xFF)
# ---------------------------------------------------------------------------

SQLITE_ERROR_CLASSES: dict[int, ErrorClass] = {
    3: _FB,  # SQLITE_PERM
    8: _FB,  # SQLITE_READONLY
    23: _FB,  # SQLITE_AUTH
    12: _NF,  # SQLITE_NOTFOUND
    18: _BR,  # SQLITE_TOOBIG
    19: _BR,  # SQLITE_CONSTRAINT
    20: _BR,  # SQLITE_MISMATCH
    25: _BR,  # SQLITE_RANGE
    275: _BR,  # SQLITE_CONSTRAINT_CHECK
    787: _BR,  # SQLITE_CONSTRAINT_FOREIGNKEY
    1299: _BR,  # SQLITE_CONSTRAINT_NOTNULL
    1555: _BR,  # SQLITE_CONSTRAINT_PRIMARYKEY
    2067: _BR,  # SQLITE_CONSTRAINT_UNIQUE
}

# SQLITE_ERROR (1) covers most statement errors; tell them apart by message
SQLITE_GENERIC_ERROR = 1
SQLITE_MESSAGE_CLASSES: tuple[tuple[str, ErrorClass], ...] = (
    ("no such table", _NF),
    ("no such view", _NF),
    ("no such column", _BR),
    ("already exists", _BR),
    ("syntax error", _BR),
)

# ---------------------------------------------------------------------------
# MySQL: server error numbers
# ---------------------------------------------------------------------------

MYSQL_ERROR_CLASSES: dict[int, ErrorClass] = {
    1146: _NF,  # ER_NO_SUCH_TABLE
    1049: _NF,  # ER_BAD_DB_ERROR
    1051: _NF,  # ER_BAD_TABLE_ERROR
    1305: _NF,  # ER_SP_DOES_NOT_EXIST
    1396: _NF,  # ER_CANNOT_USER (e.g. DROP ROLE on a missing role)
    1044: _FB,  # ER_DBACCESS_DENIED_ERROR
    1142: _FB,  # ER_TABLEACCESS_DENIED_ERROR
    1143: _FB,  # ER_COLUMNACCESS_DENIED_ERROR
    1227: _FB,  # ER_SPECIFIC_ACCESS_DENIED_ERROR
    1370: _FB,  # ER_PROCACCESS_DENIED_ERROR
    1045: _UA,  # ER_ACCESS_DENIED_ERROR
    3530: _UA,  # ER_ROLE_NOT_GRANTED
    1064: _BR,  # ER_PARSE_ERROR
    1054: _BR,  # ER_BAD_FIELD_ERROR
    1062: _BR,  # ER_DUP_ENTRY
    1048: _BR,  # ER_BAD_NULL_ERROR
    1406: _BR,  # ER_DATA_TOO_LONG
    1366: _BR,  # ER_TRUNCATED_WRONG_VALUE_FOR_FIELD
    1050: _BR,  # ER_TABLE_EXISTS_ERROR
    1007: _BR,  # ER_DB_CREATE_EXISTS
}


def postgres_error_code(exc: BaseException) -> str | None:
    if isinstance(exc, psycopg.Error):
        return exc.sqlstate
    return None


def sqlite_error_code(exc: BaseException) -> int | None:
    if isinstance(exc, sqlite3.Error):
        return getattr(exc, "sqlite_errorcode", None)
    return None


def mysql_error_code(exc: BaseException) -> int | None:
    if isinstance(exc, pymysql.err.MySQLError) and exc.args:
        code = exc.args[0]
        return code if isinstance(code, int) else None
    return None


def classify_postgres(exc: BaseException) -> ErrorClass:
    code = postgres_error_code(exc)
    if code is None:
        return ErrorClass.INTERNAL
    return POSTGRES_ERROR_CLASSES.get(code, ErrorClass.INTERNAL)


def classify_sqlite(exc: BaseException) -> ErrorClass:
    if not isinstance(exc, sqlite3.Error):
        return ErrorClass.INTERNAL
    code = sqlite_error_code(exc)
    if code is None or code == SQLITE_GENERIC_ERROR:
        msg = str(exc).lower()
        for fragment, error_class in SQLITE_MESSAGE_CLASSES:
            if fragment in msg:
                return error_class
        return ErrorClass.INTERNAL
    hit = SQLITE_ERROR_CLASSES.get(code)
    if hit is None:
        hit = SQLITE_ERROR_CLASSES.get(code & 0xFF)
    return hit or ErrorClass.INTERNAL


def classify_mysql(exc: BaseException) -> ErrorClass:
    code = mysql_error_code(exc)
    if code is None:
        return ErrorClass.INTERNAL
    return MYSQL_ERROR_CLASSES.get(code, ErrorClass.INTERNAL)


def error_code(exc: BaseException) -> Any:
    """Native error code of *exc* for any supported driver, or None."""
    for fn in (postgres_error_code, sqlite_error_code, mysql_error_code):
        code = fn(exc)
        if code is not None:
            return code
    return None
