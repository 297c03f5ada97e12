"""
Backend dialects: everything the executor needs to know about one database kind.

A dialect is chosen once at startup from ``DB_BACKEND`` and carries:

- paramstyle for bound placeholders
- the statement that opens a transaction (when the driver doesn't implicitly)
- role impersonation / reset statements (``{identity}`` is the sanitized role)
- statement-timeout statements
- the error classifier for the backend's native error codes
"""

import json
from collections.abc import Callable
from typing import Any

from psycopg.types.json import Jsonb

from app.core.errors import ConfigError, ErrorClass
from app.engines.sql.error_map import (
    classify_mysql,
    classify_postgres,
    classify_sqlite,
)
from app.engines.sql.parser import PARAMSTYLE_NAMED, PARAMSTYLE_PYFORMAT

IDENTITY_MARKER = "{identity}"


class Dialect:
    """Base dialect. Subclasses fill in the class attributes."""

    name: str = ""
    paramstyle: str = PARAMSTYLE_PYFORMAT
    # None: the driver opens a transaction implicitly on first statement
    begin_statement: str | None = None
    role_set_statement: str | None = None
    role_reset_statement: str | None = None
    # False when SET ROLE survives a rollback (session state, not transaction state)
    role_is_transactional: bool = True
    # True when backslash escapes characters in every quoted literal
    backslash_escapes: bool = False
    classifier: Callable[[BaseException], ErrorClass] = staticmethod(
        lambda exc: ErrorClass.INTERNAL
    )

    def __init__(
        self,
        *,
        role_set_statement: str | None = None,
        role_reset_statement: str | None = None,
    ) -> None:
        # None keeps the dialect default; "" disables the statement
        if role_set_statement is not None:
            self.role_set_statement = role_set_statement or None
        if role_reset_statement is not None:
            self.role_reset_statement = role_reset_statement or None
        if self.role_set_statement and IDENTITY_MARKER not in self.role_set_statement:
            raise ConfigError(
                f"ROLE_SET_STATEMENT must contain {IDENTITY_MARKER}: {self.role_set_statement!r}"
            )

    def role_set_sql(self, identity: str) -> str | None:
        """Impersonation statement for an already-sanitized *identity*."""
        if not self.role_set_statement:
            return None
        return self.role_set_statement.replace(IDENTITY_MARKER, identity)

    def role_reset_sql(self) -> str | None:
        return self.role_reset_statement

    def create_role_sql(self, identity: str) -> str | None:
        return f"CREATE ROLE {identity}"

    def statement_timeout_sql(self, seconds: float | None) -> tuple[str | None, str | None]:
        """Return ``(set_sql, reset_sql)`` for a per-statement timeout."""
        return None, None

    def classify(self, exc: BaseException) -> ErrorClass:
        return self.classifier(exc)

    def adapt_param(self, value: Any) -> Any:
        """Adapt a bound value the driver can't take natively."""
        if isinstance(value, (dict, list)):
            return json.dumps(value, default=str)
        return value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class PostgresDialect(Dialect):
    name = "postgres"
    paramstyle = PARAMSTYLE_PYFORMAT
    role_set_statement = "SET ROLE {identity}"
    role_reset_statement = "RESET ROLE"
    classifier = staticmethod(classify_postgres)

    def statement_timeout_sql(self, seconds: float | None) -> tuple[str | None, str | None]:
        if not seconds or seconds <= 0:
            return None, None
        # SET LOCAL ends with the transaction
        return f"SET LOCAL statement_timeout = {int(seconds * 1000)}", None

    def adapt_param(self, value: Any) -> Any:
        if isinstance(value, dict):
            return Jsonb(value)
        return value


class MySQLDialect(Dialect):
    name = "mysql"
    paramstyle = PARAMSTYLE_PYFORMAT
    begin_statement = "START TRANSACTION"
    role_set_statement = "SET ROLE {identity}"
    role_reset_statement = "SET ROLE DEFAULT"
    role_is_transactional = False
    backslash_escapes = True
    classifier = staticmethod(classify_mysql)

    def statement_timeout_sql(self, seconds: float | None) -> tuple[str | None, str | None]:
        if not seconds or seconds <= 0:
            return None, None
        return (
            f"SET SESSION max_execution_time = {int(seconds * 1000)}",
            "SET SESSION max_execution_time = 0",
        )


class SQLiteDialect(Dialect):
    name = "sqlite"
    paramstyle = PARAMSTYLE_NAMED
    # Connections are opened with isolation_level=None, so BEGIN is explicit
    # and DDL is covered by the transaction too.
    begin_statement = "BEGIN"
    classifier = staticmethod(classify_sqlite)

    def create_role_sql(self, identity: str) -> str | None:
        return None


DIALECTS: dict[str, type[Dialect]] = {
    "postgres": PostgresDialect,
    "mysql": MySQLDialect,
    "sqlite": SQLiteDialect,
}


def get_dialect(
    kind: str,
    *,
    role_set_statement: str | None = None,
    role_reset_statement: str | None = None,
) -> Dialect:
    """Build the dialect for backend *kind* (postgres, mysql, sqlite)."""
    cls = DIALECTS.get((kind or "").strip().lower())
    if cls is None:
        raise ConfigError(f"Unsupported DB_BACKEND: {kind!r} (expected one of {sorted(DIALECTS)})")
    return cls(
        role_set_statement=role_set_statement,
        role_reset_statement=role_reset_statement,
    )
