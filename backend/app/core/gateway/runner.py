"""
Gateway runner: classify request params and run a route through the executor.

Blocking; the gateway calls it from a worker thread.
"""

import logging
import threading
from typing import Any

from app.core.errors import ValidationError
from app.core.params import classify
from app.engines.sql.executor import QueryExecutor
from app.models_route import RouteQuerySpec

logger = logging.getLogger(__name__)


def run(
    executor: QueryExecutor,
    spec: RouteQuerySpec,
    identity: str | None,
    raw_params: dict[str, Any],
    body: dict[str, Any] | None = None,
    *,
    cancel_event: threading.Event | None = None,
) -> list[dict[str, Any]]:
    """Run *spec* for the caller; return rows of the route's final statement."""
    missing = [
        d.name
        for d in spec.parameters
        if d.required and raw_params.get(d.name) in (None, "")
    ]
    if missing:
        raise ValidationError(f"Missing required parameters: {', '.join(missing)}")

    template_params, bound_params = classify(
        raw_params,
        spec.parameters,
        body,
        body_template_allowed=spec.body_template_allowed,
    )
    logger.debug(
        "Running %s %s: template params %s, bound params %s",
        spec.method.value,
        spec.path,
        sorted(template_params),
        sorted(bound_params),
    )
    return executor.execute(
        identity,
        spec.statements,
        template_params,
        bound_params,
        cancel_event=cancel_event,
    )
