"""
Wire-format data shapes for the users resource.

DTOs isolate the HTTP contract from :class:`users_api.models.UserEntity`.
Inputs are produced by the marshmallow schemas in
:mod:`users_api.schemas.user`; outputs are dumped by the same module.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

DEFAULT_FIRST_NAME = "John"
DEFAULT_LAST_NAME = "Doe"


@dataclass(frozen=True, slots=True)
class CreateUserDto:
    """
    Payload of ``POST /api/users``.

    :param login: Letters and digits only.
    :type login: str
    :param first_name: Given name, ``"John"`` when omitted.
    :type first_name: str
    :param last_name: Family name, ``"Doe"`` when omitted.
    :type last_name: str
    """

    login: str
    first_name: str = DEFAULT_FIRST_NAME
    last_name: str = DEFAULT_LAST_NAME


@dataclass(frozen=True, slots=True)
class UpdateUserDto:
    """Payload of ``PUT`` and the document patched by ``PATCH``."""

    login: str
    first_name: str
    last_name: str


@dataclass(frozen=True, slots=True)
class UserDto:
    """Read-only projection of a stored user."""

    id: uuid.UUID
    login: str
    full_name: str
    games_played: int
    current_game_id: uuid.UUID | None = None
