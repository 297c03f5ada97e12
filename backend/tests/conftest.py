from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.pool import PoolManager
from app.engines.sql import QueryExecutor, get_dialect
from app.main import create_app
from tests.utils.sqlite import sqlite_exec


@pytest.fixture
def sqlite_path(tmp_path: Path) -> str:
    """A SQLite file with a small ``items`` table."""
    path = str(tmp_path / "store.db")
    sqlite_exec(
        path,
        """
        CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE);
        INSERT INTO items (id, name) VALUES (1, 'alpha'), (2, 'beta');
        """,
    )
    return path


@pytest.fixture
def sqlite_pool(sqlite_path: str) -> Generator[PoolManager, None, None]:
    pool = PoolManager("sqlite", sqlite_path, size=2, timeout=1.0)
    yield pool
    pool.dispose()


@pytest.fixture
def sqlite_executor(sqlite_pool: PoolManager) -> QueryExecutor:
    return QueryExecutor(get_dialect("sqlite"), sqlite_pool)


ROUTES_YAML = """
openapi: 3.0.3
info: {title: test routes, version: "1"}
paths:
  /items:
    get:
      x-grest:
        queries:
          - sql: SELECT id, name FROM items ORDER BY id
    post:
      requestBody:
        x-grest-template-allowed: true
      x-grest:
        queries:
          - name: insert
            sql: INSERT INTO items ({{ body | columns }}) VALUES ({{ body | placeholders }})
          - name: count
            sql: SELECT count(*) AS n FROM items
  /items/{id}:
    get:
      parameters:
        - {name: id, in: path}
      x-grest:
        queries:
          - sql: SELECT id, name FROM items WHERE id = :id
  /tables/{table}:
    put:
      parameters:
        - {name: table, in: path, x-grest-template-allowed: true}
      requestBody:
        x-grest-template-allowed: true
      x-grest:
        queries:
          - name: create table
            sql: CREATE TABLE {{ table }} ({{ body | column_types }})
    get:
      parameters:
        - {name: table, in: path, x-grest-template-allowed: true}
      x-grest:
        queries:
          - sql: SELECT * FROM {{ table }}
  /batch:
    post:
      parameters:
        - {name: name, in: query, required: true}
      x-grest:
        queries:
          - name: create
            sql: CREATE TABLE audit (name TEXT)
          - name: insert
            sql: INSERT INTO items (name) VALUES (:name)
"""


@pytest.fixture
def make_client(
    tmp_path: Path, sqlite_path: str
) -> Generator[Callable[..., TestClient], None, None]:
    """Build a TestClient for an app over the ``sqlite_path`` store."""
    routes_file = tmp_path / "routes.yml"
    routes_file.write_text(ROUTES_YAML, encoding="utf-8")
    clients: list[TestClient] = []

    def _make(**overrides: Any) -> TestClient:
        values: dict[str, Any] = {
            "DB_BACKEND": "sqlite",
            "DB_DSN": sqlite_path,
            "DB_POOL_SIZE": 2,
            "DB_POOL_TIMEOUT": 2.0,
            "ROUTES_FILE": str(routes_file),
            "ENVIRONMENT": "local",
            "AUTHENTICATION": "none",
        }
        values.update(overrides)
        c = TestClient(create_app(Settings(**values)))
        c.__enter__()
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
