import sqlite3


def sqlite_rows(path: str, sql: str) -> list[tuple]:
    """Read rows straight from the file, outside the pool."""
    conn = sqlite3.connect(path)
    try:
        return conn.execute(sql).fetchall()
    finally:
        conn.close()


def sqlite_tables(path: str) -> set[str]:
    return {
        r[0]
        for r in sqlite_rows(path, "SELECT name FROM sqlite_master WHERE type = 'table'")
    }


def sqlite_exec(path: str, script: str) -> None:
    conn = sqlite3.connect(path)
    try:
        conn.executescript(script)
        conn.commit()
    finally:
        conn.close()
