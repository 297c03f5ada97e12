import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.cors import CORSMiddleware

from app.api.main import api_router
from app.api.routes.gateway import router as gateway_router
from app.core.config import Settings, settings
from app.core.gateway import CredentialChecker, load_routes
from app.core.pool import PoolManager
from app.engines.sql import QueryExecutor, get_dialect
from app.initial_data import create_anon_role

_logger = logging.getLogger(__name__)

# Relative ROUTES_FILE paths are resolved against backend/
BACKEND_DIR = Path(__file__).resolve().parent.parent


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


def _routes_path(app_settings: Settings) -> Path:
    p = Path(app_settings.ROUTES_FILE)
    if not p.is_absolute() and not p.exists():
        p = BACKEND_DIR / p
    return p


def _make_lifespan(app_settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        dialect = get_dialect(
            app_settings.DB_BACKEND,
            role_set_statement=app_settings.ROLE_SET_STATEMENT,
            role_reset_statement=app_settings.ROLE_RESET_STATEMENT,
        )
        # Route errors are fatal; nothing is served from a half-loaded document
        route_table = load_routes(
            _routes_path(app_settings), prefix=app_settings.ROUTES_PREFIX
        )
        pool = PoolManager(
            app_settings.DB_BACKEND,
            app_settings.DB_DSN,
            size=app_settings.DB_POOL_SIZE,
            timeout=app_settings.DB_POOL_TIMEOUT,
            max_age=app_settings.DB_POOL_MAX_AGE_SEC,
            connect_timeout=app_settings.DB_CONNECT_TIMEOUT,
        )
        app.state.pool = pool
        app.state.route_table = route_table
        app.state.executor = QueryExecutor(
            dialect,
            pool,
            anon_role=app_settings.ANON_ROLE,
            statement_timeout=app_settings.DB_STATEMENT_TIMEOUT,
        )
        app.state.credential_checker = (
            CredentialChecker(pool, dialect, app_settings.USER_TABLE)
            if app_settings.AUTHENTICATION == "basic"
            else None
        )
        _logger.info(
            "Loaded %d routes for %s backend (authentication: %s)",
            len(route_table),
            dialect.name,
            app_settings.AUTHENTICATION,
        )

        if app_settings.CREATE_ANON_ROLE:
            try:
                create_anon_role(pool, dialect, app_settings.ANON_ROLE)
            except Exception:
                _logger.warning("Could not create anonymous role", exc_info=True)

        try:
            yield
        finally:
            pool.dispose()

    return lifespan


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings

    if app_settings.SENTRY_DSN and app_settings.ENVIRONMENT != "local":
        sentry_sdk.init(dsn=str(app_settings.SENTRY_DSN), enable_tracing=True)

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        openapi_url=f"{app_settings.API_V1_STR}/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=_make_lifespan(app_settings),
    )
    app.state.settings = app_settings

    # -----------------------------------------------------------------------
    # Global exception handlers: standardized error response format
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Return 422 with a human-readable detail string instead of raw Pydantic errors."""
        messages = []
        for err in exc.errors():
            loc = " → ".join(str(l) for l in err.get("loc", []) if l != "body")
            msg = err.get("msg", "Invalid value")
            messages.append(f"{loc}: {msg}" if loc else msg)
        return JSONResponse(
            status_code=422,
            content={"detail": "; ".join(messages)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; log and return 500 with a safe message."""
        _logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        detail = "Internal server error"
        if app_settings.ENVIRONMENT == "local":
            detail = f"Internal server error: {exc}"
        return JSONResponse(
            status_code=500,
            content={"detail": detail},
        )

    if app_settings.all_cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.all_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Service routes FIRST (higher priority)
    app.include_router(api_router, prefix=app_settings.API_V1_STR)

    # Gateway catch-all LAST: /{path:path}
    app.include_router(gateway_router)
    return app


app = create_app()
