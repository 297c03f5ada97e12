"""
DB connection and bounded connection pool for the backing store.

No driver layer: psycopg and pymysql are installed via pip, sqlite3 ships with Python.
"""

from .connect import close_quiet, connect, cursor_to_dicts, execute
from .health import health_check
from .manager import PoolManager

__all__ = [
    "connect",
    "execute",
    "cursor_to_dicts",
    "close_quiet",
    "health_check",
    "PoolManager",
]
