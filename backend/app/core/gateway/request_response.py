"""
Gateway request/response: parse_params, format_response.

- parse_params: read declared path/query/header/body params from the request.
  Returns (raw_params, body) for the parameter classifier.
- format_response: wrap rows in the { success, message, data } envelope;
  always JSON-serializable.
"""

import math
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from starlette.requests import Request

from app.models_route import ParamLocationEnum, RouteQuerySpec


async def _read_body(request: Request) -> dict[str, Any]:
    """Read JSON or form body; return {} on no body or unsupported type."""
    ct = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
    if ct == "application/json":
        try:
            raw = await request.json()
        except Exception:
            return {}
        return raw if isinstance(raw, dict) else {}
    if ct in ("application/x-www-form-urlencoded", "multipart/form-data"):
        try:
            form = await request.form()
            return dict(form)
        except Exception:
            return {}
    return {}


async def parse_params(
    request: Request,
    path_params: dict[str, Any],
    spec: RouteQuerySpec,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Collect the values of the route's declared parameters.

    - Path: from resolver path_params.
    - Query: request.query_params.
    - Header: case-insensitive request.headers lookup.
    - Body: declared body params are read from the JSON/form body.

    Params that are not declared are ignored. The whole body is returned as
    well; the classifier binds all of its top-level keys.
    """
    query = request.query_params
    body = await _read_body(request)

    out: dict[str, Any] = {}
    for desc in spec.parameters:
        if desc.location == ParamLocationEnum.PATH:
            if desc.name in path_params:
                out[desc.name] = path_params[desc.name]
        elif desc.location == ParamLocationEnum.QUERY:
            if desc.name in query:
                out[desc.name] = query.get(desc.name)
        elif desc.location == ParamLocationEnum.HEADER:
            hv = request.headers.get(desc.name)
            if hv is not None:
                out[desc.name] = hv
        elif desc.location == ParamLocationEnum.BODY:
            if desc.name in body:
                out[desc.name] = body[desc.name]
    return out, body


def _make_json_safe(obj: Any) -> Any:
    """Recursively convert non-JSON-serializable types to safe primitives.

    Handles: datetime, date, time, timedelta, Decimal, UUID, bytes, sets.
    DB rows routinely contain these.
    """
    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, float):
        # JSON has no NaN/Infinity
        return obj if math.isfinite(obj) else str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, time):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Decimal):
        # Preserve integer-valued decimals as int, otherwise float
        if not obj.is_finite():
            return str(obj)
        if obj == obj.to_integral_value():
            return int(obj)
        return float(obj)
    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (bytes, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    if isinstance(obj, dict):
        return {k: _make_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_make_json_safe(item) for item in obj]
    if isinstance(obj, set):
        return [_make_json_safe(item) for item in sorted(obj, key=str)]
    # Fallback: use str() for unknown types
    return str(obj)


def format_response(
    data: list[Any] | None, *, success: bool = True, message: str | None = None
) -> dict[str, Any]:
    """Envelope { success, message, data } with JSON-safe contents."""
    return {
        "success": success,
        "message": message,
        "data": _make_json_safe(data if data is not None else []),
    }
