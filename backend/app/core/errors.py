"""
Error taxonomy shared by the query engine and the gateway.

Every per-request failure is raised as a ``GatewayError`` subclass carrying an
``ErrorClass``; the gateway turns ``error_class.http_status`` into the HTTP
response. Load-time failures are ``ConfigError`` and abort startup.
"""

from enum import Enum


class ErrorClass(str, Enum):
    """Portable classification of a failed request."""

    BAD_REQUEST = "BadRequest"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    INTERNAL = "Internal"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorClass, int] = {
    ErrorClass.BAD_REQUEST: 400,
    ErrorClass.UNAUTHORIZED: 401,
    ErrorClass.FORBIDDEN: 403,
    ErrorClass.NOT_FOUND: 404,
    ErrorClass.INTERNAL: 500,
}


class GatewayError(Exception):
    """Base for classified errors. ``message`` is diagnostic only."""

    error_class: ErrorClass = ErrorClass.INTERNAL

    def __init__(self, message: str, *, error_class: ErrorClass | None = None) -> None:
        super().__init__(message)
        self.message = message
        if error_class is not None:
            self.error_class = error_class


class ConfigError(GatewayError):
    """Invalid route declaration or setting. Fatal at startup."""


class CompileError(ConfigError):
    """SQL template text does not parse."""


class ValidationError(GatewayError):
    """A value destined for SQL-text splicing failed the identifier grammar."""

    error_class = ErrorClass.BAD_REQUEST


class RenderError(GatewayError):
    """Template rendering failed for the supplied template params."""

    error_class = ErrorClass.BAD_REQUEST


class QueryExecutionError(GatewayError):
    """Backend failure, classified by the dialect's error table."""

    def __init__(
        self,
        message: str,
        *,
        error_class: ErrorClass = ErrorClass.INTERNAL,
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message, error_class=error_class)
        self.original = original


class PoolTimeoutError(GatewayError):
    """No pooled connection became available within the acquisition timeout."""


class CancelledExecution(GatewayError):
    """The request was cancelled while its transaction was open."""
