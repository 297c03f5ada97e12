"""
Gateway: route loader, resolver, request/response, basic auth, runner.
"""

from app.core.gateway.auth import CredentialChecker, parse_basic_auth
from app.core.gateway.loader import build_route_table, load_document, load_routes
from app.core.gateway.request_response import format_response, parse_params
from app.core.gateway.resolver import RouteTable, path_to_regex
from app.core.gateway.runner import run as run_api

__all__ = [
    "CredentialChecker",
    "RouteTable",
    "build_route_table",
    "format_response",
    "load_document",
    "load_routes",
    "parse_basic_auth",
    "parse_params",
    "path_to_regex",
    "run_api",
]
