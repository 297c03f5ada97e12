"""
Connection pool for the backing store.

Size-bounded: at most ``size`` connections are checked out at once; a caller
waits up to ``timeout`` seconds for a free slot and then gets
``PoolTimeoutError`` (classified Internal, never retried). Idle connections
are health-checked on checkout after idling, evicted after ``max_age`` and
rolled back on checkout and release.
"""

import logging
import threading
import time
from typing import Any, NamedTuple

from app.core.errors import PoolTimeoutError

from .connect import close_quiet, connect

_log = logging.getLogger(__name__)

_DEFAULT_MAX_AGE_SEC = 600  # 10 minutes


_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class PoolManager:
    """Bounded connection pool with acquisition timeout, health-check and max-age."""

    def __init__(
        self,
        backend: str,
        dsn: str,
        *,
        size: int = 20,
        timeout: float = 30.0,
        max_age: float = _DEFAULT_MAX_AGE_SEC,
        connect_timeout: int = 10,
    ) -> None:
        if size < 1:
            raise ValueError("pool size must be >= 1")
        self.backend = backend
        self._dsn = dsn
        self._size = size
        self._timeout = timeout
        self._max_age = float(max_age)
        self._connect_timeout = connect_timeout
        self._slots = threading.BoundedSemaphore(size)
        self._idle: list[_PoolEntry] = []
        self._checked_out: dict[int, float] = {}  # id(conn) -> created_at
        self._lock = threading.Lock()

    def get_connection(self) -> Any:
        """Check out a healthy connection; wait at most ``timeout`` for a free slot."""
        if not self._slots.acquire(timeout=self._timeout):
            _log.warning(
                "Connection pool exhausted (size=%s, waited %.1fs)", self._size, self._timeout
            )
            raise PoolTimeoutError(
                f"No database connection available within {self._timeout:g}s"
            )
        try:
            conn, created_at = self._checkout()
        except BaseException:
            self._slots.release()
            raise
        with self._lock:
            self._checked_out[id(conn)] = created_at
        return conn

    def release(self, conn: Any, *, discard: bool = False) -> None:
        """Return a connection to the pool (or close it when discarded/expired)."""
        with self._lock:
            created_at = self._checked_out.pop(id(conn), time.monotonic())
        try:
            if discard or self._age(created_at) > self._max_age:
                close_quiet(conn)
                return
            try:
                conn.rollback()
            except Exception:
                close_quiet(conn)
                return
            with self._lock:
                self._idle.append(
                    _PoolEntry(conn=conn, created_at=created_at, last_used=time.monotonic())
                )
        finally:
            self._slots.release()

    def dispose(self) -> None:
        """Close idle connections. Checked-out connections close on release."""
        with self._lock:
            entries = list(self._idle)
            self._idle.clear()
        for e in entries:
            close_quiet(e.conn)

    def stats(self) -> dict[str, int]:
        """Return pool statistics for monitoring."""
        with self._lock:
            return {
                "size": self._size,
                "idle_connections": len(self._idle),
                "checked_out": len(self._checked_out),
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _checkout(self) -> tuple[Any, float]:
        now = time.monotonic()
        while True:
            entry = self._pop()
            if entry is None:
                break
            if self._age(entry.created_at) > self._max_age:
                close_quiet(entry.conn)
                continue
            idle_sec = now - entry.last_used
            if idle_sec > _PING_IDLE_THRESHOLD and not self._is_alive(entry.conn):
                close_quiet(entry.conn)
                continue
            try:
                entry.conn.rollback()
            except Exception:
                close_quiet(entry.conn)
                continue
            return entry.conn, entry.created_at

        conn = connect(self.backend, self._dsn, timeout=self._connect_timeout)
        return conn, time.monotonic()

    def _pop(self) -> _PoolEntry | None:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return None

    @staticmethod
    def _age(created_at: float) -> float:
        return time.monotonic() - created_at

    @staticmethod
    def _is_alive(conn: Any) -> bool:
        """Lightweight ping: attempt a no-op query to detect broken connections."""
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.close()
            return True
        except Exception:
            return False
