"""
Parameter classification.

Splits request values into template params (spliced into SQL text, must be
sanitized) and bound params (passed to the driver). Runs per request after the
gateway has extracted path/query/header/body values.
"""

from __future__ import annotations

from typing import Any

from app.core.errors import ConfigError
from app.models_route import ParameterDescriptor


def parse_template_allowed(value: Any, where: str = "") -> bool:
    """Parse an ``x-grest-template-allowed`` flag.

    Accepts native booleans or case-insensitive "true"/"false" strings.
    Anything else is a declaration error.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        s = value.strip().lower()
        if s == "true":
            return True
        if s == "false":
            return False
    suffix = f" on {where}" if where else ""
    raise ConfigError(
        f"x-grest-template-allowed must be boolean{suffix}, "
        f"not {type(value).__name__} {value!r}"
    )


def classify(
    raw_params: dict[str, Any] | None,
    descriptors: list[ParameterDescriptor] | tuple[ParameterDescriptor, ...],
    body: dict[str, Any] | None = None,
    *,
    body_template_allowed: bool = False,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Return ``(template_params, bound_params)``.

    - Every declared parameter is bound (``None`` when absent from the request).
    - A declared parameter is also a template param when its descriptor allows
      it and the request supplied a value.
    - Every top-level body key is bound; the whole body is template param
      ``body`` when the request body is template-allowed.
    - A supplied declared parameter overrides a body key of the same name.

    Undeclared raw params are ignored.
    """
    _raw = raw_params or {}
    template_params: dict[str, Any] = {}
    bound_params: dict[str, Any] = {}

    if body:
        # Can't bind nested values by path, so only top-level keys
        bound_params.update(body)
        if body_template_allowed:
            template_params["body"] = body

    for desc in descriptors:
        if desc.name not in _raw:
            bound_params.setdefault(desc.name, None)
            continue
        value = _raw[desc.name]
        bound_params[desc.name] = value
        if desc.template_allowed:
            template_params[desc.name] = value

    return template_params, bound_params
