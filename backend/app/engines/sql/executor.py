"""
Role-scoped transaction executor.

Runs a route's statement sequence inside one transaction, impersonating the
caller as a database role so the database's own grants decide what the caller
may do. The executor performs no permission check of its own.

    Idle -> Open -> RoleSet -> Executing(0..n-1) -> Committed
    any state -> RolledBack (on failure or cancellation)

Statements 0..n-2 are exec-only; rows are materialized only from statement
n-1. Rows are returned only after role reset and commit both succeed.
"""

import logging
import threading
from collections.abc import Sequence
from typing import Any

from app.core import sanitizer
from app.core.errors import (
    CancelledExecution,
    ErrorClass,
    GatewayError,
    QueryExecutionError,
    RenderError,
)
from app.core.pool import PoolManager, close_quiet, cursor_to_dicts, execute
from app.engines.sql.dialects import Dialect
from app.engines.sql.error_map import error_code
from app.engines.sql.parser import to_paramstyle
from app.engines.sql.template_engine import StatementTemplate

_log = logging.getLogger(__name__)


class QueryExecutor:
    """
    execute(identity, statements, template_params, bound_params) -> list[dict]

    Raises a ``GatewayError`` subclass on any failure; the transaction is
    rolled back before the error leaves this class.
    """

    def __init__(
        self,
        dialect: Dialect,
        pool: PoolManager,
        *,
        anon_role: str = "anon",
        statement_timeout: float | None = None,
    ) -> None:
        if not sanitizer.is_identifier(anon_role):
            raise ValueError(f"anonymous role {anon_role!r} is not a valid identifier")
        self._dialect = dialect
        self._pool = pool
        self._anon_role = anon_role
        self._statement_timeout = statement_timeout

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def resolve_identity(self, identity: str | None) -> str:
        """Caller identity if it satisfies the identifier grammar, else the anonymous role."""
        if identity and sanitizer.is_identifier(identity):
            return identity
        if identity:
            _log.info("Caller identity %r is not a valid role name; using %r", identity, self._anon_role)
        else:
            _log.debug("No caller identity; using %r", self._anon_role)
        return self._anon_role

    def execute(
        self,
        identity: str | None,
        statements: Sequence[StatementTemplate],
        template_params: dict[str, Any] | None = None,
        bound_params: dict[str, Any] | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> list[dict[str, Any]]:
        if not statements:
            raise QueryExecutionError("Route declares no statements")
        _tparams = template_params or {}
        _bparams = bound_params or {}
        role = self.resolve_identity(identity)

        self._check_cancelled(cancel_event)
        conn = self._acquire()
        discard = False
        role_set = False
        try:
            self._begin(conn)

            set_role = self._dialect.role_set_sql(role)
            if set_role:
                self._run_control(conn, set_role, "Set role", ErrorClass.UNAUTHORIZED)
                role_set = True

            timeout_set, timeout_reset = self._dialect.statement_timeout_sql(self._statement_timeout)
            if timeout_set:
                self._run_control(conn, timeout_set, "Set statement timeout")

            sanitizer.validate(_tparams)

            rows = self._run_statements(conn, statements, _tparams, _bparams, cancel_event)

            self._check_cancelled(cancel_event)
            if timeout_reset:
                self._run_control(conn, timeout_reset, "Reset statement timeout")
            reset_role = self._dialect.role_reset_sql()
            if role_set and reset_role:
                self._run_control(conn, reset_role, "Reset role", ErrorClass.UNAUTHORIZED)
                role_set = False
            self._commit(conn)
            return rows
        except BaseException as e:
            discard = self._rollback(conn, role_set)
            if isinstance(e, GatewayError):
                _log.info(
                    "Transaction rolled back (%s): %s", e.error_class.value, e.message
                )
            else:
                _log.error("Transaction rolled back on unexpected error: %s", e, exc_info=True)
            raise
        finally:
            self._pool.release(conn, discard=discard)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _acquire(self) -> Any:
        try:
            return self._pool.get_connection()
        except GatewayError:
            raise
        except Exception as e:
            _log.error("Failed to open database connection: %s", e, exc_info=True)
            # A failing service connection is never the caller's fault
            raise QueryExecutionError(
                f"Database connection failed: {e}", error_class=ErrorClass.INTERNAL, original=e
            ) from e

    def _begin(self, conn: Any) -> None:
        begin = self._dialect.begin_statement
        if begin:
            self._run_control(conn, begin, "Open transaction", ErrorClass.INTERNAL)

    def _run_statements(
        self,
        conn: Any,
        statements: Sequence[StatementTemplate],
        template_params: dict[str, Any],
        bound_params: dict[str, Any],
        cancel_event: threading.Event | None,
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        last = len(statements) - 1
        for i, stmt in enumerate(statements):
            self._check_cancelled(cancel_event)
            rendered = stmt.render(template_params)
            sql, names = to_paramstyle(
                rendered, self._dialect.paramstyle, self._dialect.backslash_escapes
            )
            args = self._bind_args(stmt, names, bound_params)
            _log.debug("Statement %d/%d '%s': %s", i + 1, last + 1, stmt.name, sql)

            cur = self._run(conn, sql, args, f"Statement '{stmt.name}'")
            try:
                if i == last:
                    try:
                        rows = cursor_to_dicts(cur)
                    except Exception as e:
                        raise self._classified(e, f"Statement '{stmt.name}' fetch") from e
            finally:
                close_quiet(cur)
        return rows

    def _bind_args(
        self, stmt: StatementTemplate, names: list[str], bound_params: dict[str, Any]
    ) -> dict[str, Any]:
        missing = [n for n in names if n not in bound_params]
        if missing:
            raise RenderError(
                f"Statement '{stmt.name}': bound parameter(s) not supplied: "
                + ", ".join(f":{n}" for n in missing)
            )
        return {n: self._dialect.adapt_param(bound_params[n]) for n in names}

    def _commit(self, conn: Any) -> None:
        try:
            conn.commit()
        except Exception as e:
            raise self._classified(e, "Commit") from e

    def _rollback(self, conn: Any, role_set: bool) -> bool:
        """Roll back; return True when the connection must not be reused."""
        try:
            conn.rollback()
        except Exception:
            _log.warning("Rollback failed; discarding connection", exc_info=True)
            return True
        if role_set and not self._dialect.role_is_transactional:
            # The role outlives the rollback on this backend
            reset_role = self._dialect.role_reset_sql()
            if not reset_role:
                return True
            try:
                close_quiet(execute(conn, reset_role))
            except Exception:
                _log.warning("Role reset after rollback failed; discarding connection", exc_info=True)
                return True
        return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(self, conn: Any, sql: str, args: dict[str, Any] | None, what: str) -> Any:
        try:
            return execute(conn, sql, args)
        except Exception as e:
            raise self._classified(e, what) from e

    def _run_control(
        self, conn: Any, sql: str, what: str, error_class: ErrorClass | None = None
    ) -> None:
        """Run a statement with no params and no result; a fixed class overrides the table."""
        try:
            close_quiet(execute(conn, sql))
        except Exception as e:
            err = self._classified(e, what)
            if error_class is not None:
                err.error_class = error_class
            raise err from e

    def _classified(self, exc: Exception, what: str) -> QueryExecutionError:
        error_class = self._dialect.classify(exc)
        code = error_code(exc)
        if error_class is ErrorClass.INTERNAL:
            _log.error("%s failed (code=%s): %s", what, code, exc)
        else:
            _log.warning("%s failed (code=%s, %s): %s", what, code, error_class.value, exc)
        return QueryExecutionError(f"{what} failed: {exc}", error_class=error_class, original=exc)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise CancelledExecution("Request cancelled; transaction rolled back")
