"""
Route document loader.

Reads an OpenAPI 3 document (YAML or JSON) and compiles every operation that
carries an ``x-grest`` extension into a ``RouteQuerySpec``::

    paths:
      /_data/{database}/{schema}/{table}:
        get:
          parameters:
            - {name: table, in: path, required: true, x-grest-template-allowed: true}
          x-grest:
            queries:
              - name: read
                sql: SELECT * FROM {{ schema }}.{{ table }}

Everything here runs once at startup; any ``ConfigError`` is fatal.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from app.core.errors import ConfigError
from app.core.gateway.resolver import RouteTable
from app.core.params import parse_template_allowed
from app.engines.sql.template_engine import SQLTemplateEngine, StatementTemplate
from app.models_route import (
    HttpMethodEnum,
    ParameterDescriptor,
    ParamLocationEnum,
    RouteQuerySpec,
)

_log = logging.getLogger(__name__)

EXT_QUERIES = "x-grest"
EXT_TEMPLATE_ALLOWED = "x-grest-template-allowed"

_METHODS = {m.value.lower(): m for m in HttpMethodEnum}


def load_document(path: str | Path) -> dict[str, Any]:
    """Read a YAML or JSON OpenAPI document from *path*."""
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read route document {p}: {e}") from e
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse route document {p}: {e}") from e
    if not isinstance(doc, dict) or not isinstance(doc.get("paths"), dict):
        raise ConfigError(f"Route document {p} has no 'paths' mapping")
    return doc


def _resolve_ref(doc: dict[str, Any], obj: Any) -> Any:
    """Follow a local ``$ref`` (``#/components/...``); other objects pass through."""
    seen: set[str] = set()
    while isinstance(obj, dict) and "$ref" in obj:
        ref = obj["$ref"]
        if not isinstance(ref, str) or not ref.startswith("#/") or ref in seen:
            raise ConfigError(f"Unsupported or circular $ref: {ref!r}")
        seen.add(ref)
        target: Any = doc
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, dict) or part not in target:
                raise ConfigError(f"Unresolvable $ref: {ref}")
            target = target[part]
        obj = target
    return obj


def _parse_parameters(
    doc: dict[str, Any], raw: list[Any], where: str
) -> list[ParameterDescriptor]:
    out: dict[tuple[str, str], ParameterDescriptor] = {}
    for item in raw:
        p = _resolve_ref(doc, item)
        if not isinstance(p, dict):
            raise ConfigError(f"Parameter on {where} must be an object")
        name = p.get("name")
        loc = p.get("in")
        if not isinstance(name, str) or not name:
            raise ConfigError(f"Parameter without a name on {where}")
        try:
            location = ParamLocationEnum(loc)
        except ValueError as e:
            raise ConfigError(f"Parameter '{name}' on {where}: unsupported location {loc!r}") from e
        allowed = False
        if EXT_TEMPLATE_ALLOWED in p:
            allowed = parse_template_allowed(p[EXT_TEMPLATE_ALLOWED], f"{where} {name}")
        required = location == ParamLocationEnum.PATH or bool(p.get("required", False))
        # Operation-level parameters override path-level ones with the same name+location
        out[(name, location.value)] = ParameterDescriptor(
            name=name, location=location, template_allowed=allowed, required=required
        )
    return list(out.values())


def _compile_queries(
    engine: SQLTemplateEngine, ext: Any, where: str
) -> tuple[StatementTemplate, ...]:
    if not isinstance(ext, dict):
        raise ConfigError(f"Failed to parse {EXT_QUERIES} at {where}: expected a mapping")
    queries = ext.get("queries")
    if not isinstance(queries, list) or not queries:
        raise ConfigError(f"{EXT_QUERIES} at {where} must declare a non-empty 'queries' list")
    statements: list[StatementTemplate] = []
    for i, query in enumerate(queries):
        if not isinstance(query, dict) or "sql" not in query:
            raise ConfigError(f"Failed to get 'sql' from {EXT_QUERIES} query {i} at {where}")
        name = str(query.get("name") or f"{where} {i}")
        statements.append(engine.compile(query["sql"], name))
    return tuple(statements)


def _check_template_variables(
    engine: SQLTemplateEngine,
    statements: tuple[StatementTemplate, ...],
    allowed: set[str],
    where: str,
) -> None:
    """Every template variable must be a param declared template-allowed."""
    for stmt in statements:
        undeclared = set(engine.parse_parameters(stmt.text)) - allowed
        if undeclared:
            raise ConfigError(
                f"Statement '{stmt.name}' at {where} uses template variable(s) "
                f"{sorted(undeclared)} not declared with {EXT_TEMPLATE_ALLOWED}: true"
            )


def build_route_table(doc: dict[str, Any], *, prefix: str = "") -> RouteTable:
    """Compile every ``x-grest`` operation in *doc* into an immutable RouteTable."""
    engine = SQLTemplateEngine()
    routes: list[RouteQuerySpec] = []
    for path, item in doc["paths"].items():
        item = _resolve_ref(doc, item)
        if not isinstance(item, dict):
            continue
        shared_params = item.get("parameters") or []
        for key, op in item.items():
            method = _METHODS.get(str(key).lower())
            if method is None or not isinstance(op, dict) or EXT_QUERIES not in op:
                continue
            where = f"{method.value} {path}"
            statements = _compile_queries(engine, op[EXT_QUERIES], where)
            parameters = _parse_parameters(
                doc, list(shared_params) + list(op.get("parameters") or []), where
            )

            body_allowed = False
            body = op.get("requestBody")
            if body is not None:
                body = _resolve_ref(doc, body)
                if isinstance(body, dict) and EXT_TEMPLATE_ALLOWED in body:
                    body_allowed = parse_template_allowed(
                        body[EXT_TEMPLATE_ALLOWED], f"{where} requestBody"
                    )

            allowed = {p.name for p in parameters if p.template_allowed}
            if body_allowed:
                allowed.add("body")
            _check_template_variables(engine, statements, allowed, where)

            routes.append(
                RouteQuerySpec(
                    method=method,
                    path=prefix.rstrip("/") + "/" + str(path).strip("/"),
                    statements=statements,
                    parameters=tuple(parameters),
                    body_template_allowed=body_allowed,
                )
            )
            _log.debug("Loaded route %s with %d statement(s)", where, len(statements))
    return RouteTable(routes)


def load_routes(path: str | Path, *, prefix: str = "") -> RouteTable:
    """Load and compile the route document at *path*."""
    table = build_route_table(load_document(path), prefix=prefix)
    _log.info("Loaded %d route(s) from %s", len(table), path)
    return table
