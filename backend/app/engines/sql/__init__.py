"""
SQL query engine: template compiler (Jinja2), bound-placeholder parser,
backend dialects and the role-scoped transaction executor.

Exports: SQLTemplateEngine, StatementTemplate, compile_statement, parse_parameters,
to_paramstyle, Dialect, get_dialect, QueryExecutor.
"""

from app.engines.sql.dialects import Dialect, get_dialect
from app.engines.sql.executor import QueryExecutor
from app.engines.sql.parser import parse_parameters, to_paramstyle
from app.engines.sql.template_engine import (
    SQLTemplateEngine,
    StatementTemplate,
    compile_statement,
)

__all__ = [
    "SQLTemplateEngine",
    "StatementTemplate",
    "compile_statement",
    "parse_parameters",
    "to_paramstyle",
    "Dialect",
    "get_dialect",
    "QueryExecutor",
]
