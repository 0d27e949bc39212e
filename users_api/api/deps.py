"""Shared API helpers for request decoding and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from flask import current_app, request

F = TypeVar("F", bound=Callable[..., Any])

#: Identifier substituted for route segments that are not UUIDs.
NIL_UUID = uuid.UUID(int=0)


def parse_user_id(raw: str) -> uuid.UUID:
    """Decode a ``{userId}`` route segment.

    Unparseable values decode to :data:`NIL_UUID`, which no stored user can
    carry, so lookups answer ``404`` and upserts ``400``.
    """
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return NIL_UUID


def read_json_body() -> Any:
    """Return the decoded JSON body or ``None`` when absent or malformed."""

    return request.get_json(silent=True)


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
