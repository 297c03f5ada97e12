"""
Engines: SQL (Jinja2 templates executed in a role-scoped transaction).
"""

from app.engines.sql import QueryExecutor, SQLTemplateEngine, get_dialect, parse_parameters

__all__ = [
    "QueryExecutor",
    "SQLTemplateEngine",
    "get_dialect",
    "parse_parameters",
]
