"""User resource schemas.

Wire names are camelCase (``firstName``), attribute names snake_case.
"""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from users_api.dto import (
    DEFAULT_FIRST_NAME,
    DEFAULT_LAST_NAME,
    CreateUserDto,
    UpdateUserDto,
    UserDto,
)

LOGIN_MESSAGE = "Login should contain only letters or digits."


def validate_login(value: str) -> None:
    """Require a non-empty login made of letters and digits."""
    if not value:
        raise ValidationError("Login is required.")
    if not value.isalnum():
        raise ValidationError(LOGIN_MESSAGE)


not_blank = validate.Regexp(r"\s*\S", error="Field may not be blank.")


class BaseSchema(Schema):
    """Ignore unknown keys; fields dump in declaration order."""

    class Meta:
        unknown = EXCLUDE


class CreateUserSchema(BaseSchema):
    """Validate payloads when creating users."""

    login = fields.String(required=True, validate=validate_login)
    first_name = fields.String(data_key="firstName", load_default=DEFAULT_FIRST_NAME)
    last_name = fields.String(data_key="lastName", load_default=DEFAULT_LAST_NAME)

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> CreateUserDto:
        return CreateUserDto(**data)


class UpdateUserSchema(BaseSchema):
    """Validate full replacements; also the document shape for JSON Patch."""

    login = fields.String(required=True, validate=validate_login)
    first_name = fields.String(data_key="firstName", required=True, validate=not_blank)
    last_name = fields.String(data_key="lastName", required=True, validate=not_blank)

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> UpdateUserDto:
        return UpdateUserDto(**data)


class UserSchema(BaseSchema):
    """Public representation of a user."""

    id = fields.UUID(required=True)
    login = fields.String(required=True)
    full_name = fields.String(data_key="fullName", required=True)
    games_played = fields.Integer(data_key="gamesPlayed", required=True)
    current_game_id = fields.UUID(data_key="currentGameId", allow_none=True)

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> UserDto:
        return UserDto(**data)
