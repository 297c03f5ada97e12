"""
Gateway resolver: immutable (method, path) -> RouteQuerySpec table.

Built once at startup by the route loader and looked up per request. Static
paths are matched by dict lookup first, then parameterized paths in declared
order via compiled regexes.
"""

import functools
import re
from collections.abc import Iterable, Iterator

from app.core.errors import ConfigError
from app.models_route import RouteQuerySpec


@functools.lru_cache(maxsize=1024)
def path_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Convert path pattern to regex. {name} -> (?P<name>[^/]+); rest escaped.
    E.g. "users/{id}" -> ^users/(?P<id>[^/]+)$; "list" -> ^list$
    """
    parts: list[str] = []
    for seg in re.split(r"(\{[^}]+\})", pattern):
        if re.match(r"^\{[^}]+\}$", seg):
            name = seg[1:-1]
            parts.append(
                f"(?P<{name}>[^/]+)" if name.isidentifier() else re.escape(seg)
            )
        else:
            parts.append(re.escape(seg))
    return re.compile("^" + "".join(parts) + "$")


def _normalize(path: str) -> str:
    return (path or "").strip().strip("/")


class RouteTable:
    """Read-only route lookup shared by all requests."""

    def __init__(self, routes: Iterable[RouteQuerySpec]) -> None:
        static: dict[tuple[str, str], RouteQuerySpec] = {}
        dynamic: list[tuple[re.Pattern[str], str, RouteQuerySpec]] = []
        seen: set[tuple[str, str]] = set()
        for spec in routes:
            method = spec.method.value
            path = _normalize(spec.path)
            key = (method, path)
            if key in seen:
                raise ConfigError(f"Duplicate route declaration: {method} /{path}")
            seen.add(key)
            if "{" in path:
                try:
                    dynamic.append((path_to_regex(path), method, spec))
                except re.error as e:
                    raise ConfigError(f"Invalid path pattern /{path}: {e}") from e
            else:
                static[key] = spec
        self._static = static
        self._dynamic = tuple(dynamic)

    def resolve(
        self, method: str, path: str
    ) -> tuple[RouteQuerySpec, dict[str, str]] | None:
        """Return ``(spec, path_params)`` for the request, or None if nothing matches."""
        method_upper = (method or "GET").upper()
        p = _normalize(path)
        spec = self._static.get((method_upper, p))
        if spec is not None:
            return spec, {}
        for rx, route_method, spec in self._dynamic:
            if route_method != method_upper:
                continue
            m = rx.match(p)
            if m:
                return spec, m.groupdict()
        return None

    def __len__(self) -> int:
        return len(self._static) + len(self._dynamic)

    def __iter__(self) -> Iterator[RouteQuerySpec]:
        yield from self._static.values()
        for _, _, spec in self._dynamic:
            yield spec
