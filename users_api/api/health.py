"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from users_api.api.deps import timing
from users_api.core.extensions import db
from users_api.repositories.user import SQLAlchemyUserRepository

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report process status and, for the SQL backend, database reachability."""

    repository = current_app.extensions.get("users_repository")
    payload = {"status": "ok", "repository": type(repository).__name__}
    if isinstance(repository, SQLAlchemyUserRepository):
        try:
            db.session.execute(text("SELECT 1"))
            payload["db"] = "ok"
        except SQLAlchemyError:
            current_app.logger.exception("healthcheck.db_error")
            payload["db"] = "fail"
            payload["status"] = "degraded"
    payload["version"] = current_app.config.get("APP_VERSION", "dev")
    return jsonify(payload)
