"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from users_api.core.logger import ensure_request_id
from users_api.repositories.errors import NotFoundError, RepositoryError

log = logging.getLogger(__name__)

#: Field-level validation messages, keyed by wire field name.
FieldErrors = dict[str, list[str]]


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        404: "not_found",
        405: "method_not_allowed",
        406: "not_acceptable",
        409: "conflict",
        413: "payload_too_large",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    errors: FieldErrors | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param errors: Optional field-level validation messages.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if errors:
        problem["errors"] = errors
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any], status: int) -> Response:
    """Return a Flask response with ``application/problem+json`` media type."""
    resp = jsonify(problem)
    resp.status_code = status
    resp.mimetype = "application/problem+json"
    return resp


def normalize_errors(messages: Any, prefix: str = "") -> FieldErrors:
    """Flatten marshmallow's nested message structure into ``field -> [msg]``.

    Nested keys are joined with dots; non-string leaves are stringified.
    """
    if isinstance(messages, dict):
        flat: FieldErrors = {}
        for key, value in messages.items():
            name = f"{prefix}.{key}" if prefix else str(key)
            for field, msgs in normalize_errors(value, name).items():
                flat.setdefault(field, []).extend(msgs)
        return flat
    if isinstance(messages, (list, tuple)):
        if all(isinstance(m, str) for m in messages):
            return {prefix or "$": list(messages)}
        flat = {}
        for item in messages:
            for field, msgs in normalize_errors(item, prefix).items():
                flat.setdefault(field, []).extend(msgs)
        return flat
    return {prefix or "$": [str(messages)]}


def merge_errors(*groups: FieldErrors) -> FieldErrors:
    """Merge several ``field -> [msg]`` maps preserving message order."""
    merged: FieldErrors = {}
    for group in groups:
        for field, msgs in group.items():
            merged.setdefault(field, []).extend(msgs)
    return merged


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    errors : FieldErrors | None, optional
        Field-level validation messages included in the response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        errors: FieldErrors | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.errors = errors or {}

    def to_problem(self) -> dict[str, Any]:
        """Serialize error metadata into an RFC 7807 problem."""
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            errors=self.errors or None,
        )


class BadRequest(APIError):
    """400 for absent or undecodable input."""

    def __init__(self, message: str = "Malformed request") -> None:
        super().__init__(message, status_code=HTTPStatus.BAD_REQUEST, code="bad_request")


class NotFound(APIError):
    """404 when resources are missing."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_FOUND, code="not_found")


class NotAcceptable(APIError):
    """406 when no supported representation matches ``Accept``."""

    def __init__(self, message: str = "No acceptable representation") -> None:
        super().__init__(message, status_code=HTTPStatus.NOT_ACCEPTABLE, code="not_acceptable")


class UnprocessableEntity(APIError):
    """422 carrying field-level validation errors."""

    def __init__(self, errors: FieldErrors, message: str = "Validation failed") -> None:
        super().__init__(
            message,
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            errors=errors,
        )


def translate_repository_error(exc: RepositoryError) -> APIError:
    """Map repository-level errors onto API errors."""
    if isinstance(exc, NotFoundError):
        return NotFound(str(exc))
    return APIError(str(exc), status_code=HTTPStatus.BAD_REQUEST, code="bad_request")


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Every handled error is answered with an RFC 7807 document.
    - 5xx are logged with ``exc_info``; 4xx as warnings.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        level = log.error if err.status_code >= 500 else log.warning
        level(
            "APIError: code=%s status=%s msg=%s",
            err.code,
            err.status_code,
            err.message,
            extra={"status": err.status_code},
        )
        return _problem_response(problem, err.status_code)

    @app.errorhandler(RepositoryError)
    def handle_repository_error(err: RepositoryError):
        return handle_api_error(translate_repository_error(err))

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return handle_api_error(UnprocessableEntity(normalize_errors(err.messages)))

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level("HTTPException: code=%s status=%s detail=%s", error_code, status, message)
        response = _problem_response(problem, status)
        # Keep ``Allow`` on 405 answers
        for key, value in err.get_headers():
            if key.lower() == "allow":
                response.headers[key] = value
        return response

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        problem = _as_problem(
            status=HTTPStatus.CONFLICT,
            code="conflict",
            message="Resource conflict",
        )
        log.error("IntegrityError", exc_info=True)
        return _problem_response(problem, HTTPStatus.CONFLICT)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        problem = _as_problem(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError", exc_info=True)
        return _problem_response(problem, HTTPStatus.SERVICE_UNAVAILABLE)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Never leak internal details
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception", exc_info=True)
        return _problem_response(problem, HTTPStatus.INTERNAL_SERVER_ERROR)
