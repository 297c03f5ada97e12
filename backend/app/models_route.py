"""
Route declaration models.

Built once by the route loader at startup and shared read-only by every
request: ParameterDescriptor, RouteQuerySpec.
"""

from enum import Enum
from typing import NamedTuple

from app.engines.sql.template_engine import StatementTemplate


class ParamLocationEnum(str, Enum):
    """Where a declared parameter is read from."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"


class HttpMethodEnum(str, Enum):
    """HTTP methods a route can be declared for."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ParameterDescriptor(NamedTuple):
    name: str
    location: ParamLocationEnum
    template_allowed: bool = False
    required: bool = False


class RouteQuerySpec(NamedTuple):
    """Ordered statements for one (method, path). The last one produces the rows."""

    method: HttpMethodEnum
    path: str
    statements: tuple[StatementTemplate, ...]
    parameters: tuple[ParameterDescriptor, ...] = ()
    body_template_allowed: bool = False

    @property
    def result_statement(self) -> StatementTemplate:
        return self.statements[-1]
