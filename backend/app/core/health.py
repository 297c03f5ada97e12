"""
Health-check helpers for liveness and readiness probes.

Liveness:  is the process alive and not deadlocked?  (cheap, no I/O)
Readiness: can it serve traffic?  (backing store reachable, routes loaded)
"""

import logging
import threading

from app.core.gateway.resolver import RouteTable
from app.core.pool import PoolManager, health_check

logger = logging.getLogger(__name__)


def check_database(pool: PoolManager) -> bool:
    """Check the backing store with SELECT 1 on a pooled connection. Returns True if ok."""
    try:
        conn = pool.get_connection()
    except Exception:
        logger.warning("Database check failed: no connection", exc_info=True)
        return False
    ok = False
    try:
        ok = health_check(conn)
    finally:
        pool.release(conn, discard=not ok)
    return ok


def liveness_check() -> tuple[bool, list[str]]:
    """Process-level check: the main thread is alive."""
    failures: list[str] = []
    if not threading.main_thread().is_alive():
        failures.append("main_thread")
    return (len(failures) == 0, failures)


def readiness_check(pool: PoolManager, routes: RouteTable | None) -> tuple[bool, list[str]]:
    """
    Returns (ok, failures). ok is False if the database is unreachable or no
    route document has been loaded.
    """
    failures: list[str] = []

    if routes is None:
        failures.append("routes_not_loaded")

    if not check_database(pool):
        failures.append("database")

    return (len(failures) == 0, failures)
