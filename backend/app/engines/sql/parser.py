"""
Parse parameter names from SQL statement templates.

- ``parse_parameters``: template-expansion variables (Jinja2 undeclared names).
- ``to_paramstyle``: rewrite ``:name`` bound placeholders in rendered SQL into
  the driver's paramstyle and report which names are referenced.

The placeholder scanner is quote-aware: single-quoted, double-quoted and
dollar-quoted (``$$...$$``) literals and comments are copied unchanged, and
``::type`` casts are not placeholders. Backslash is an ordinary character in
standard SQL literals.
"""

from app.engines.sql.template_engine import SQLTemplateEngine

PARAMSTYLE_NAMED = "named"  # :name (sqlite3)
PARAMSTYLE_PYFORMAT = "pyformat"  # %(name)s (psycopg, pymysql)


def parse_parameters(template: str) -> list[str]:
    """
    Extract variable names used in {{ ... }} and {% ... %} (undeclared in template).

    Returns the template-expansion names that must be supplied to render().
    """
    return SQLTemplateEngine().parse_parameters(template)


def _is_name_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


def _is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def to_paramstyle(
    sql: str, paramstyle: str, backslash_escapes: bool = False
) -> tuple[str, list[str]]:
    """Return ``(sql_for_driver, bound_names)``.

    ``bound_names`` lists each referenced ``:name`` once, in first-use order.
    For pyformat every literal ``%`` is doubled since the driver formats the
    whole statement text.

    Backslash escapes a character inside quoted literals only when
    *backslash_escapes* is set (MySQL) or inside a Postgres ``E'...'`` string.
    """
    pyformat = paramstyle == PARAMSTYLE_PYFORMAT
    out: list[str] = []
    names: list[str] = []
    i = 0
    length = len(sql)

    def emit(text: str) -> None:
        out.append(text.replace("%", "%%") if pyformat else text)

    while i < length:
        ch = sql[i]

        if ch in ("'", '"'):
            quote = ch
            escapes = backslash_escapes or (
                ch == "'"
                and i > 0
                and sql[i - 1] in ("E", "e")
                and (i == 1 or not _is_name_char(sql[i - 2]))
            )
            j = i + 1
            while j < length:
                if sql[j] == quote:
                    if j + 1 < length and sql[j + 1] == quote:
                        j += 2
                        continue
                    j += 1
                    break
                if escapes and sql[j] == "\\" and j + 1 < length:
                    j += 2
                    continue
                j += 1
            emit(sql[i:j])
            i = j
            continue

        if ch == "$" and i + 1 < length and sql[i + 1] == "$":
            end = sql.find("$$", i + 2)
            j = length if end == -1 else end + 2
            emit(sql[i:j])
            i = j
            continue

        if ch == "-" and i + 1 < length and sql[i + 1] == "-":
            end = sql.find("\n", i)
            j = length if end == -1 else end + 1
            emit(sql[i:j])
            i = j
            continue

        if ch == "/" and i + 1 < length and sql[i + 1] == "*":
            end = sql.find("*/", i + 2)
            j = length if end == -1 else end + 2
            emit(sql[i:j])
            i = j
            continue

        if ch == ":":
            if i + 1 < length and sql[i + 1] == ":":
                # ::type cast
                emit("::")
                i += 2
                continue
            if i + 1 < length and _is_name_start(sql[i + 1]):
                j = i + 2
                while j < length and _is_name_char(sql[j]):
                    j += 1
                name = sql[i + 1 : j]
                if name not in names:
                    names.append(name)
                out.append(f"%({name})s" if pyformat else f":{name}")
                i = j
                continue

        emit(ch)
        i += 1

    return "".join(out), names
