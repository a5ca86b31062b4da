"""Request-scoped logging helpers."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any


class RouteLoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Prefix log records with the HTTP method and route they came from."""

    def process(
        self,
        msg: Any,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        kwargs.setdefault("extra", {}).update(extra)
        return f"[{extra.get('method')} {extra.get('path')}] {msg}", kwargs


def get_route_logger(method: str, path: str) -> RouteLoggerAdapter:
    """Return a logger that tags every record with ``method`` and ``path``."""
    return RouteLoggerAdapter(logging.getLogger("glocal.api"), {"method": method, "path": path})
