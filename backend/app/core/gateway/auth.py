"""
Gateway auth: HTTP Basic credential check against the user table.

The check runs on a pooled connection as the service role (no impersonation)
and only resolves *who* the caller is. What the caller may do is decided by
the database when the route runs under that identity.

The user table holds ``username`` and a bcrypt ``password`` hash (e.g. written
by ``crypt(:password, gen_salt('bf', 8))``).
"""

import base64
import binascii
import logging

from app.core.errors import ConfigError, ErrorClass, GatewayError, QueryExecutionError
from app.core.pool import PoolManager, close_quiet, cursor_to_dicts, execute
from app.core.sanitizer import IDENTIFIER_PATTERN, is_identifier
from app.core.security import verify_password
from app.engines.sql.dialects import Dialect
from app.engines.sql.parser import to_paramstyle

_log = logging.getLogger(__name__)


def parse_basic_auth(header: str | None) -> tuple[str, str] | None:
    """``Authorization: Basic base64(user:pass)`` -> (user, pass); None if absent/malformed."""
    auth = (header or "").strip()
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "basic" or not token.strip():
        return None
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class CredentialChecker:
    """Resolve a caller identity from Basic credentials."""

    def __init__(self, pool: PoolManager, dialect: Dialect, user_table: str) -> None:
        # The table name is spliced into SQL text
        if not is_identifier(user_table):
            raise ConfigError(
                f"Must specify a user table name matching /{IDENTIFIER_PATTERN}/, got {user_table!r}"
            )
        self._pool = pool
        self._sql, _ = to_paramstyle(
            f"SELECT username, password FROM {user_table} WHERE username = :username",
            dialect.paramstyle,
            dialect.backslash_escapes,
        )

    def check(self, username: str, password: str) -> str | None:
        """Return the stored username when the password matches, else None."""
        if not username:
            return None
        conn = self._pool.get_connection()
        try:
            cur = execute(conn, self._sql, {"username": username})
            try:
                rows = cursor_to_dicts(cur)
            finally:
                close_quiet(cur)
        except GatewayError:
            raise
        except Exception as e:
            _log.error("Failed to query for passwords: %s", e, exc_info=True)
            raise QueryExecutionError(
                "Credential check failed", error_class=ErrorClass.INTERNAL, original=e
            ) from e
        finally:
            self._pool.release(conn)

        for row in rows:
            if verify_password(password, row.get("password")):
                return row.get("username")
        _log.info("No matching credentials for %r", username)
        return None
