"""Content negotiation between JSON and XML representations.

The endpoint logic hands plain, JSON-compatible values (``dict``, ``list``,
``str``...) to :func:`respond`; the representation picked from the
``Accept`` header turns them into bytes. XML follows the layout of .NET's
``XmlSerializer`` (``<UserDto>``, ``<ArrayOfUserDto>``, ``<guid>``) so
existing XML clients keep working.
"""

from __future__ import annotations

import functools
import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, TypeVar
from xml.etree import ElementTree as ET

from flask import Response, current_app, request

from users_api.core.errors import NotAcceptable

F = TypeVar("F", bound=Callable[..., Any])

JSON_MIMETYPE = "application/json"
XML_MIMETYPES = ("application/xml", "text/xml")

XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XSD_NS = "http://www.w3.org/2001/XMLSchema"


class Representation(ABC):
    """A serialization strategy for response bodies."""

    mimetype: str

    @abstractmethod
    def render(self, payload: Any, *, root: str, item: str | None = None) -> str:
        """Serialize ``payload``; ``root``/``item`` name XML elements."""

    @property
    def content_type(self) -> str:
        return f"{self.mimetype}; charset=utf-8"


class JSONRepresentation(Representation):
    mimetype = JSON_MIMETYPE

    def render(self, payload: Any, *, root: str, item: str | None = None) -> str:
        return json.dumps(payload, default=str, ensure_ascii=False)


class XMLRepresentation(Representation):
    """Render dicts as elements with PascalCase child tags."""

    def __init__(self, mimetype: str = "application/xml") -> None:
        self.mimetype = mimetype

    def render(self, payload: Any, *, root: str, item: str | None = None) -> str:
        element = ET.Element(root, {"xmlns:xsi": XSI_NS, "xmlns:xsd": XSD_NS})
        if isinstance(payload, (list, tuple)):
            for entry in payload:
                _fill(ET.SubElement(element, item or "Item"), entry)
        else:
            _fill(element, payload)
        body = ET.tostring(element, encoding="unicode")
        return '<?xml version="1.0" encoding="utf-8"?>' + body


def _pascal(name: str) -> str:
    return name[:1].upper() + name[1:]


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill(element: ET.Element, value: Any) -> None:
    if value is None:
        element.set("xsi:nil", "true")
    elif isinstance(value, Mapping):
        for key, child in value.items():
            _fill(ET.SubElement(element, _pascal(str(key))), child)
    elif isinstance(value, (list, tuple)):
        for child in value:
            _fill(ET.SubElement(element, "Item"), child)
    else:
        element.text = _scalar(value)


_JSON = JSONRepresentation()
_OFFERS: dict[str, Representation] = {
    JSON_MIMETYPE: _JSON,
    **{mimetype: XMLRepresentation(mimetype) for mimetype in XML_MIMETYPES},
}


def negotiate() -> Representation:
    """Pick the representation for the current request.

    A missing ``Accept`` header or ``*/*`` yields JSON. An ``Accept`` header
    naming neither format raises :class:`NotAcceptable` when
    ``RETURN_HTTP_NOT_ACCEPTABLE`` is enabled and falls back to JSON
    otherwise.
    """
    accept = request.accept_mimetypes
    if not accept:
        return _JSON
    best = accept.best_match(list(_OFFERS))
    if best is not None:
        return _OFFERS[best]
    if current_app.config.get("RETURN_HTTP_NOT_ACCEPTABLE", True):
        raise NotAcceptable(f"Supported media types: {', '.join(_OFFERS)}")
    return _JSON


def produces(func: F) -> F:
    """Reject requests whose ``Accept`` header cannot be honored, before any work."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        negotiate()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def respond(
    payload: Any,
    *,
    root: str,
    item: str | None = None,
    status: int = 200,
    headers: Mapping[str, str] | None = None,
) -> Response:
    """Build a response rendering ``payload`` in the negotiated format."""

    representation = negotiate()
    body = representation.render(payload, root=root, item=item)
    response = Response(body, status=status, content_type=representation.content_type)
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


def empty(status: int = 204, headers: Mapping[str, str] | None = None) -> Response:
    """Bodiless response (``204``, ``HEAD``, ``OPTIONS``)."""

    response = Response(status=status)
    del response.headers["Content-Type"]
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response
