"""User resource endpoints.

:class:`UsersController` holds the endpoint logic against injected
collaborators; the blueprint below only decodes route/query input and builds
a controller per request from what the application registered.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from typing import Any

from flask import Blueprint, Response, current_app, request
from marshmallow import RAISE, Schema, ValidationError

from users_api.api.deps import NIL_UUID, parse_user_id, read_json_body, timing
from users_api.api.links import FlaskLinkBuilder, LinkBuilder
from users_api.api.negotiation import JSON_MIMETYPE, empty, produces, respond
from users_api.api.patch import apply_patch
from users_api.core.errors import (
    BadRequest,
    NotFound,
    UnprocessableEntity,
    merge_errors,
    normalize_errors,
)
from users_api.dto import CreateUserDto, UpdateUserDto
from users_api.mapping import UserMapper
from users_api.models.user import UserEntity
from users_api.repositories.base import UserRepository
from users_api.schemas import (
    CreateUserSchema,
    PaginationQuerySchema,
    UpdateUserSchema,
    UserSchema,
)

log = logging.getLogger(__name__)

bp = Blueprint("users", __name__, url_prefix="/users")

GET_USER_ROUTE = "users.get_user_by_id"
GET_USERS_ROUTE = "users.get_users"

PAGINATION_HEADER = "X-Pagination"
ALLOWED_METHODS = "GET,POST,OPTIONS"
HEAD_CONTENT_TYPE = f"{JSON_MIMETYPE}; charset=utf-8"

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 20

user_schema = UserSchema()
user_list_schema = UserSchema(many=True)
create_user_schema = CreateUserSchema()
update_user_schema = UpdateUserSchema()


def effective_page_number(page_number: int) -> int:
    return max(page_number, 1)


def effective_page_size(page_size: int, max_page_size: int = MAX_PAGE_SIZE) -> int:
    return max(1, min(page_size, max_page_size))


def encode_pagination_header(meta: Mapping[str, Any]) -> str:
    """Compact JSON, keys kept in insertion order, ``None`` as ``null``."""
    return json.dumps(meta, separators=(",", ":"))


def _validate(schema: Schema, payload: Mapping[str, Any], **kwargs: Any) -> Any:
    try:
        return schema.load(payload, **kwargs)
    except ValidationError as err:
        raise UnprocessableEntity(normalize_errors(err.messages)) from err


def decode_create_user(payload: Any) -> CreateUserDto:
    """
    :raises BadRequest: The body is absent or not a JSON object.
    :raises UnprocessableEntity: A field fails validation.
    """
    if payload is None:
        raise BadRequest("Request body is required.")
    if not isinstance(payload, Mapping):
        raise BadRequest("Request body must be a JSON object.")
    return _validate(create_user_schema, payload)


def decode_update_user(user_id: uuid.UUID, payload: Any) -> UpdateUserDto:
    """
    :raises BadRequest: The body is absent or not an object, or ``user_id``
        is the nil UUID.
    :raises UnprocessableEntity: A field fails validation.
    """
    if payload is None or user_id == NIL_UUID:
        raise BadRequest("A request body and a non-empty user id are required.")
    if not isinstance(payload, Mapping):
        raise BadRequest("Request body must be a JSON object.")
    return _validate(update_user_schema, payload)


def decode_patch_document(payload: Any) -> list[Any]:
    """:raises BadRequest: The document is absent or not a JSON array."""
    if payload is None:
        raise BadRequest("A JSON Patch document is required.")
    if not isinstance(payload, list):
        raise BadRequest("A JSON Patch document must be an array of operations.")
    return payload


def decode_pagination(args: Mapping[str, Any], default_page_size: int) -> tuple[int, int]:
    """Read ``pageNumber``/``pageSize`` from the query string.

    A value that is not a 32-bit integer falls back to its default; the
    other parameter is kept.
    """
    schema = PaginationQuerySchema(default_page_size=default_page_size)
    try:
        data = schema.load(args)
    except ValidationError as err:
        log.debug("users.page_query_ignored fields=%s", sorted(err.messages))
        data = {**schema.defaults(), **(err.valid_data or {})}
    return data["page_number"], data["page_size"]


class UsersController:
    """Stateless handler for the ``/users`` resource.

    Parameters
    ----------
    repository:
        Persistence contract; any :class:`UserRepository`.
    mapper:
        DTO <-> entity conversions.
    link_builder:
        Produces absolute URIs for named routes.
    max_page_size:
        Upper clamp for ``pageSize`` on the list endpoint.
    """

    def __init__(
        self,
        repository: UserRepository,
        mapper: UserMapper,
        link_builder: LinkBuilder,
        *,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.repository = repository
        self.mapper = mapper
        self.links = link_builder
        self.max_page_size = max_page_size

    def get_user_by_id(self, user_id: uuid.UUID, *, head: bool = False) -> Response:
        user = self.repository.find_by_id(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        user_dto = self.mapper.to_user_dto(user)
        if head:
            return empty(200, {"Content-Type": HEAD_CONTENT_TYPE})
        return respond(user_schema.dump(user_dto), root="UserDto")

    def get_users(self, page_number: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Response:
        page_number = effective_page_number(page_number)
        page_size = effective_page_size(page_size, self.max_page_size)
        page = self.repository.get_page(page_number, page_size).map(self.mapper.to_user_dto)

        previous_page_link = (
            self.links.build_uri(
                GET_USERS_ROUTE, {"pageNumber": page_number - 1, "pageSize": page_size}
            )
            if page.has_previous
            else None
        )
        next_page_link = (
            self.links.build_uri(
                GET_USERS_ROUTE, {"pageNumber": page_number + 1, "pageSize": page_size}
            )
            if page.has_next
            else None
        )
        pagination = {
            "previousPageLink": previous_page_link,
            "nextPageLink": next_page_link,
            "totalCount": page.total_count,
            "pageSize": page.page_size,
            "currentPage": page.current_page,
            "totalPages": page.total_pages,
        }
        log.debug(
            "users.page",
            extra={"page_number": page_number, "page_size": page_size},
        )
        return respond(
            user_list_schema.dump(page.items),
            root="ArrayOfUserDto",
            item="UserDto",
            headers={PAGINATION_HEADER: encode_pagination_header(pagination)},
        )

    def create_user(self, payload: Any) -> Response:
        create_dto = decode_create_user(payload)
        user = self.repository.insert(self.mapper.from_create_dto(create_dto))
        log.info("users.created", extra={"user_id": str(user.id)})
        return self._created(user)

    def update_user(self, user_id: uuid.UUID, payload: Any) -> Response:
        update_dto = decode_update_user(user_id, payload)
        user = self.repository.find_by_id(user_id) or UserEntity(id=user_id)
        user = self.mapper.apply_update_dto(update_dto, user)
        user, inserted = self.repository.upsert(user)
        log.info(
            "users.upserted inserted=%s",
            inserted,
            extra={"user_id": str(user_id)},
        )
        if inserted:
            return self._created(user)
        return empty(204)

    def partially_update_user(self, user_id: uuid.UUID, payload: Any) -> Response:
        operations = decode_patch_document(payload)
        user = self.repository.find_by_id(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        document = update_user_schema.dump(self.mapper.to_update_dto(user))
        patched, patch_errors = apply_patch(document, operations)
        try:
            update_dto = update_user_schema.load(patched, unknown=RAISE)
        except ValidationError as err:
            raise UnprocessableEntity(
                merge_errors(patch_errors, normalize_errors(err.messages))
            ) from err
        if patch_errors:
            raise UnprocessableEntity(patch_errors)
        self.repository.update(self.mapper.apply_update_dto(update_dto, user))
        log.info(
            "users.patched operations=%d",
            len(operations),
            extra={"user_id": str(user_id)},
        )
        return empty(204)

    def delete_user(self, user_id: uuid.UUID) -> Response:
        if self.repository.find_by_id(user_id) is None:
            raise NotFound(f"User {user_id} not found")
        self.repository.delete(user_id)
        log.info("users.deleted", extra={"user_id": str(user_id)})
        return empty(204)

    def get_options(self) -> Response:
        return empty(200, {"Allow": ALLOWED_METHODS})

    def _created(self, user: UserEntity) -> Response:
        location = self.links.build_uri(GET_USER_ROUTE, {"user_id": str(user.id)})
        return respond(str(user.id), root="guid", status=201, headers={"Location": location})


def _controller() -> UsersController:
    return UsersController(
        repository=current_app.extensions["users_repository"],
        mapper=UserMapper(),
        link_builder=FlaskLinkBuilder(),
        max_page_size=int(current_app.config.get("USERS_MAX_PAGE_SIZE", MAX_PAGE_SIZE)),
    )


@bp.route("/<user_id>", methods=["GET", "HEAD"], endpoint="get_user_by_id")
@timing
@produces
def get_user_by_id(user_id: str):
    """Return a single user (headers only for ``HEAD``)."""

    return _controller().get_user_by_id(parse_user_id(user_id), head=request.method == "HEAD")


@bp.get("", endpoint="get_users", provide_automatic_options=False)
@timing
@produces
def get_users():
    """Return one page of users; pagination travels in ``X-Pagination``."""

    default_page_size = int(current_app.config.get("USERS_DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE))
    page_number, page_size = decode_pagination(request.args, default_page_size)
    return _controller().get_users(page_number, page_size)


@bp.post("", provide_automatic_options=False)
@timing
@produces
def create_user():
    """Create a user; the repository assigns its id."""

    return _controller().create_user(read_json_body())


@bp.put("/<user_id>")
@timing
@produces
def update_user(user_id: str):
    """Replace a user, creating it under ``user_id`` when absent."""

    return _controller().update_user(parse_user_id(user_id), read_json_body())


@bp.patch("/<user_id>")
@timing
@produces
def partially_update_user(user_id: str):
    """Apply a JSON Patch document to a user."""

    return _controller().partially_update_user(parse_user_id(user_id), read_json_body())


@bp.delete("/<user_id>")
@timing
@produces
def delete_user(user_id: str):
    """Delete a user."""

    return _controller().delete_user(parse_user_id(user_id))


@bp.route("", methods=["OPTIONS"], endpoint="get_options")
@timing
def get_options():
    """Advertise the methods supported on the collection."""

    return _controller().get_options()
