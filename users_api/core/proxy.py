"""WSGI proxy middleware configuration helper."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Apply :class:`werkzeug.middleware.proxy_fix.ProxyFix` when enabled.

    Absolute links (``Location``, ``X-Pagination``) are built from the
    request host and scheme, so behind a reverse proxy they must come from
    the ``X-Forwarded-*`` headers. Controlled by ``USE_PROXYFIX`` (defaults
    to ``True``); a single hop is trusted.
    """
    if app.config.get("USE_PROXYFIX", True):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
