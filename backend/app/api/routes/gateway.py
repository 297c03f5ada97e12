"""
Gateway: dynamic /{path:path} over the declared route table.

Flow: resolve -> auth -> parse_params -> run -> format_response.
run is sync/blocking; it runs in a worker thread so the event loop keeps
accepting requests. If the client goes away (or the request task is
cancelled) the worker is told through a threading.Event and rolls back.
"""

import asyncio
import logging
import threading

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.api.deps import CredentialCheckerDep, ExecutorDep, RouteTableDep
from app.core.errors import ErrorClass, GatewayError
from app.core.gateway import format_response, parse_basic_auth, parse_params, run_api

_log = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["gateway"], include_in_schema=False)

# Seconds between client-disconnect polls while a query is running
DISCONNECT_POLL_INTERVAL = 0.25


def _gateway_error(
    status_code: int, detail: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Return standard envelope { success: false, message, data: [] } for gateway errors."""
    return JSONResponse(
        status_code=status_code,
        content=format_response(None, success=False, message=str(detail)),
        headers=headers,
    )


def _unauthorized() -> JSONResponse:
    return _gateway_error(401, "Unauthorized", {"WWW-Authenticate": "Basic"})


def _error_response(e: GatewayError, environment: str, challenge: bool) -> JSONResponse:
    # Only prompt for credentials when the server actually checks them
    if e.error_class == ErrorClass.UNAUTHORIZED and challenge:
        return _unauthorized()
    message = e.message
    if e.error_class == ErrorClass.INTERNAL and environment != "local":
        message = "Internal server error"
    return _gateway_error(e.error_class.http_status, message)


async def _run_until_disconnect(request: Request, cancel_event: threading.Event, *args, **kwargs):
    """Await run_api in a thread; set cancel_event if the client disconnects or we are cancelled."""
    task = asyncio.ensure_future(
        asyncio.to_thread(run_api, *args, cancel_event=cancel_event, **kwargs)
    )
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                break
            if await request.is_disconnected():
                _log.info("Client disconnected on %s %s; cancelling", request.method, request.url.path)
                cancel_event.set()
        return task.result()
    except asyncio.CancelledError:
        cancel_event.set()
        raise


@router.api_route(
    "/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"]
)
async def gateway_proxy(
    path: str,
    request: Request,
    executor: ExecutorDep,
    routes: RouteTableDep,
    checker: CredentialCheckerDep,
) -> JSONResponse:
    """
    Dynamic gateway: resolve {path} to a route, run its statements as the
    caller's role, return the final statement's rows as JSON.
    404 if no route matches.
    """
    resolved = routes.resolve(request.method, path) if routes is not None else None
    if not resolved:
        return _gateway_error(404, "Not Found")
    spec, path_params = resolved

    identity: str | None = None
    try:
        if checker is not None:
            creds = parse_basic_auth(request.headers.get("authorization"))
            if creds is None:
                return _unauthorized()
            identity = await run_in_threadpool(checker.check, *creds)
            if identity is None:
                return _unauthorized()

        raw_params, body = await parse_params(request, path_params, spec)
        rows = await _run_until_disconnect(
            request,
            threading.Event(),
            executor,
            spec,
            identity,
            raw_params,
            body,
        )
    except GatewayError as e:
        return _error_response(
            e, request.app.state.settings.ENVIRONMENT, challenge=checker is not None
        )

    return JSONResponse(content=format_response(rows))
