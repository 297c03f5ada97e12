"""Unit tests for gateway request/response: parse_params, format_response."""

import asyncio
import uuid
from datetime import date, datetime
from decimal import Decimal

from starlette.requests import Request

from app.core.gateway.request_response import format_response, parse_params
from app.engines.sql import compile_statement
from app.models_route import (
    HttpMethodEnum,
    ParamLocationEnum,
    ParameterDescriptor,
    RouteQuerySpec,
)


def _make_request(
    *,
    method: str = "GET",
    query_string: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
    body: bytes = b"",
) -> Request:
    scope: dict = {
        "type": "http",
        "method": method,
        "path": "/",
        "query_string": query_string,
        "headers": headers or [],
        "server": ("localhost", 80),
        "client": ("127.0.0.1", 0),
        "scheme": "http",
        "root_path": "",
    }

    async def receive() -> dict:
        return {"type": "http.request", "body": body, "more_body": False}

    async def send(_: object) -> None:
        pass

    return Request(scope, receive, send)


def _spec(*params: tuple[str, ParamLocationEnum]) -> RouteQuerySpec:
    return RouteQuerySpec(
        method=HttpMethodEnum.POST,
        path="/x",
        statements=(compile_statement("SELECT 1"),),
        parameters=tuple(ParameterDescriptor(name=n, location=loc) for n, loc in params),
    )


def _run(coro) -> object:
    return asyncio.run(coro)


# --- parse_params ---


def test_parse_params_declared_locations() -> None:
    spec = _spec(
        ("id", ParamLocationEnum.PATH),
        ("limit", ParamLocationEnum.QUERY),
        ("x-tenant", ParamLocationEnum.HEADER),
        ("name", ParamLocationEnum.BODY),
    )

    async def run() -> tuple:
        req = _make_request(
            method="POST",
            query_string=b"limit=10&other=1",
            headers=[(b"content-type", b"application/json"), (b"x-tenant", b"acme")],
            body=b'{"name": "n", "extra": 2}',
        )
        return await parse_params(req, {"id": "7"}, spec)

    raw, body = _run(run())
    assert raw == {"id": "7", "limit": "10", "x-tenant": "acme", "name": "n"}
    assert body == {"name": "n", "extra": 2}


def test_parse_params_absent_not_included() -> None:
    spec = _spec(("limit", ParamLocationEnum.QUERY))

    async def run() -> tuple:
        return await parse_params(_make_request(), {}, spec)

    raw, body = _run(run())
    assert raw == {}
    assert body == {}


def test_parse_params_form_body() -> None:
    spec = _spec(("name", ParamLocationEnum.BODY))

    async def run() -> tuple:
        req = _make_request(
            method="POST",
            headers=[(b"content-type", b"application/x-www-form-urlencoded")],
            body=b"name=abc",
        )
        return await parse_params(req, {}, spec)

    raw, _ = _run(run())
    assert raw == {"name": "abc"}


def test_parse_params_non_object_json_ignored() -> None:
    async def run() -> tuple:
        req = _make_request(
            method="POST",
            headers=[(b"content-type", b"application/json")],
            body=b"[1, 2]",
        )
        return await parse_params(req, {}, _spec())

    _, body = _run(run())
    assert body == {}


# --- format_response ---


def test_format_response_envelope() -> None:
    assert format_response([{"a": 1}]) == {"success": True, "message": None, "data": [{"a": 1}]}


def test_format_response_error() -> None:
    out = format_response(None, success=False, message="Not Found")
    assert out == {"success": False, "message": "Not Found", "data": []}


def test_format_response_json_safe() -> None:
    uid = uuid.uuid4()
    out = format_response(
        [
            {
                "d": date(2024, 1, 2),
                "ts": datetime(2024, 1, 2, 3, 4, 5),
                "n": Decimal("3"),
                "f": Decimal("1.5"),
                "u": uid,
                "b": b"hi",
                "nan": float("nan"),
            }
        ]
    )
    row = out["data"][0]
    assert row["d"] == "2024-01-02"
    assert row["ts"] == "2024-01-02T03:04:05"
    assert row["n"] == 3 and isinstance(row["n"], int)
    assert row["f"] == 1.5
    assert row["u"] == str(uid)
    assert row["b"] == "hi"
    assert row["nan"] == "nan"
