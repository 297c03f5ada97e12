"""
Connection health check for the backing store.
"""

from typing import Any

from .connect import close_quiet, execute


def health_check(conn: Any) -> bool:
    """
    Run SELECT 1 and return True if no exception. Postgres, MySQL and SQLite all support SELECT 1.
    """
    cur = None
    try:
        cur = execute(conn, "SELECT 1")
        cur.fetchone()
        return True
    except Exception:
        return False
    finally:
        if cur is not None:
            close_quiet(cur)
