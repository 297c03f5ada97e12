"""Unit tests for core.pool: connect, execute, cursor_to_dicts, health_check."""

from unittest.mock import MagicMock, patch

import pytest

from app.core.pool import connect, cursor_to_dicts, execute, health_check
from app.core.pool.connect import _mysql_kwargs


def test_sqlite_connect_execute_cursor_to_dicts(sqlite_path: str) -> None:
    conn = connect("sqlite", sqlite_path)
    try:
        cur = execute(conn, "SELECT id, name FROM items WHERE id = :id", {"id": 2})
        assert cursor_to_dicts(cur) == [{"id": 2, "name": "beta"}]
    finally:
        conn.close()


def test_sqlite_connect_is_not_in_transaction(sqlite_path: str) -> None:
    conn = connect("sqlite", sqlite_path)
    try:
        execute(conn, "SELECT 1")
        assert conn.in_transaction is False
    finally:
        conn.close()


def test_cursor_to_dicts_no_description() -> None:
    cur = MagicMock()
    cur.description = None
    assert cursor_to_dicts(cur) == []


def test_execute_closes_cursor_on_error() -> None:
    conn = MagicMock()
    cur = conn.cursor.return_value
    cur.execute.side_effect = RuntimeError("bad")
    with pytest.raises(RuntimeError):
        execute(conn, "SELECT 1")
    cur.close.assert_called_once()


def test_health_check_sqlite(sqlite_path: str) -> None:
    conn = connect("sqlite", sqlite_path)
    try:
        assert health_check(conn) is True
    finally:
        conn.close()


def test_health_check_failure() -> None:
    conn = MagicMock()
    conn.cursor.side_effect = RuntimeError("gone")
    assert health_check(conn) is False


@patch("psycopg.connect")
def test_postgres_connect_uses_dsn(mock_connect: MagicMock) -> None:
    connect("postgres", "postgresql://u:p@h:5432/db", timeout=3)
    mock_connect.assert_called_once_with("postgresql://u:p@h:5432/db", connect_timeout=3)


@patch("pymysql.connect")
def test_mysql_connect_autocommit_off(mock_connect: MagicMock) -> None:
    connect("mysql", "mysql://app:s%40cret@db:3307/shop")
    kwargs = mock_connect.call_args.kwargs
    assert kwargs["host"] == "db"
    assert kwargs["port"] == 3307
    assert kwargs["password"] == "s@cret"
    assert kwargs["database"] == "shop"
    assert kwargs["autocommit"] is False


def test_mysql_kwargs_rejects_other_scheme() -> None:
    with pytest.raises(ValueError):
        _mysql_kwargs("postgresql://h/db")


def test_connect_unknown_backend() -> None:
    with pytest.raises(ValueError):
        connect("oracle", "x")
