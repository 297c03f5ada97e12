"""
SQL template compiler (Jinja2).

Statement text carries two placeholder namespaces:

- ``{{ name }}`` / ``{% for k, v in m.items() %}``: template expansion, spliced
  as literal SQL text. Only for identifiers (table/column/role names); every
  value is sanitized before rendering.
- ``:name``: bound parameters, left in the rendered text and handed to the
  driver (see ``parser.to_paramstyle``).

Templates are compiled once at load time into ``StatementTemplate`` objects
and shared read-only across requests. Rendering runs in Jinja2's sandbox with
``StrictUndefined`` so a missing template param is an error, not empty text.
"""

from typing import Any, NamedTuple

from jinja2 import StrictUndefined, Template, TemplateError, TemplateSyntaxError, UndefinedError, meta
from jinja2.sandbox import SandboxedEnvironment, SecurityError

from app.core.errors import CompileError, GatewayError, RenderError
from app.engines.sql.filters import SQL_FILTERS

_SQL_ENV: SandboxedEnvironment | None = None


def _get_sql_env() -> SandboxedEnvironment:
    """Return the shared sandboxed Jinja2 Environment for SQL templates."""
    global _SQL_ENV
    if _SQL_ENV is None:
        _SQL_ENV = SandboxedEnvironment(
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        _SQL_ENV.filters.update(SQL_FILTERS)
    return _SQL_ENV


def _preview(text: str) -> str:
    return text[:500] + "..." if len(text) > 500 else text


class StatementTemplate(NamedTuple):
    """One compiled statement of a route. Immutable once built."""

    name: str
    text: str
    template: Template

    def render(self, params: dict[str, Any]) -> str:
        """Render with (already sanitized) template params to literal SQL."""
        try:
            return self.template.render(**params)
        except GatewayError:
            raise
        except UndefinedError as e:
            raise RenderError(
                f"Statement '{self.name}': template variable not found: {e}. "
                f"Available template params: {sorted(params)}."
            ) from e
        except SecurityError as e:
            raise RenderError(f"Statement '{self.name}': unsafe template operation: {e}") from e
        except TemplateError as e:
            raise RenderError(f"Statement '{self.name}': template render error: {e}") from e
        except (TypeError, ValueError, AttributeError) as e:
            raise RenderError(f"Statement '{self.name}': template render error: {e}") from e


class SQLTemplateEngine:
    """Compiles statement templates and lists their template variables."""

    def compile(self, text: str, name: str = "") -> StatementTemplate:
        """Compile *text*; raise ``CompileError`` on invalid template syntax."""
        if not isinstance(text, str) or not text.strip():
            raise CompileError(f"Statement '{name}': SQL template is empty")
        env = _get_sql_env()
        try:
            tpl = env.from_string(text)
        except TemplateSyntaxError as e:
            raise CompileError(
                f"Statement '{name}': SQL template syntax error: {e} "
                f"(line {e.lineno}). Template preview:\n{_preview(text)}"
            ) from e
        return StatementTemplate(name=name, text=text, template=tpl)

    def parse_parameters(self, text: str) -> list[str]:
        """Extract variable names used in ``{{ }}`` and ``{% %}`` (undeclared)."""
        env = _get_sql_env()
        try:
            ast = env.parse(text)
        except TemplateSyntaxError as e:
            raise CompileError(f"SQL template syntax error: {e} (line {e.lineno})") from e
        # Jinja2 globals such as range/dict resolve without a param
        return sorted(meta.find_undeclared_variables(ast) - set(env.globals))


def compile_statement(text: str, name: str = "") -> StatementTemplate:
    """Module-level shortcut for ``SQLTemplateEngine().compile``."""
    return SQLTemplateEngine().compile(text, name)
