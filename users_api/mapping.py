"""Conversions between wire DTOs and :class:`UserEntity`."""

from __future__ import annotations

from users_api.dto import CreateUserDto, UpdateUserDto, UserDto
from users_api.models.user import UserEntity


class UserMapper:
    """Map users between their HTTP and persistence shapes.

    Only ``login``, ``first_name`` and ``last_name`` flow in from the wire;
    ``id``, ``games_played`` and ``current_game_id`` are owned by the entity.
    """

    def to_user_dto(self, entity: UserEntity) -> UserDto:
        return UserDto(
            id=entity.id,
            login=entity.login,
            full_name=entity.full_name,
            games_played=entity.games_played or 0,
            current_game_id=entity.current_game_id,
        )

    def to_update_dto(self, entity: UserEntity) -> UpdateUserDto:
        return UpdateUserDto(
            login=entity.login,
            first_name=entity.first_name,
            last_name=entity.last_name,
        )

    def from_create_dto(self, dto: CreateUserDto) -> UserEntity:
        """Build a transient entity; the repository assigns its id."""
        return UserEntity(
            login=dto.login,
            first_name=dto.first_name,
            last_name=dto.last_name,
        )

    def apply_update_dto(self, dto: UpdateUserDto, entity: UserEntity) -> UserEntity:
        """Overwrite every mapped field of ``entity`` with ``dto`` and return it."""
        entity.login = dto.login
        entity.first_name = dto.first_name
        entity.last_name = dto.last_name
        return entity
