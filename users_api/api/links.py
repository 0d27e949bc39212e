"""Absolute URI generation for named routes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from flask import url_for


class LinkBuilder(Protocol):
    def build_uri(self, route_name: str, params: Mapping[str, Any]) -> str: ...


class FlaskLinkBuilder:
    """Build external URLs through Flask's URL map.

    Parameters that are not part of the rule become query-string arguments,
    in the order given.
    """

    def build_uri(self, route_name: str, params: Mapping[str, Any]) -> str:
        return url_for(route_name, _external=True, **params)
