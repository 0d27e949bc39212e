"""User entity persisted by the users repository."""

from __future__ import annotations

import uuid

from sqlalchemy import Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, validates

from users_api.core.extensions import db

from .base import ReprMixin, UUIDPKMixin


class UserEntity(UUIDPKMixin, ReprMixin, db.Model):
    """
    Internal representation of a user.

    Fields
    ------
    id : uuid.UUID
        Opaque identity, immutable once assigned.
    login : str
        Letters and digits only; validated at the API layer.
    first_name : str
        Given name.
    last_name : str
        Family name.
    games_played : int
        Counter of finished games.
    current_game_id : uuid.UUID | None
        Game the user is currently in, if any.
    """

    __tablename__ = "users"

    login: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_game_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    __table_args__ = (Index("ix_users_login", "login"),)

    def __init__(self, id: uuid.UUID | None = None, **fields) -> None:
        fields.setdefault("first_name", "")
        fields.setdefault("last_name", "")
        fields.setdefault("games_played", 0)
        super().__init__(id=id, **fields)

    @property
    def full_name(self) -> str:
        """Display name, family name first."""
        return f"{self.last_name} {self.first_name}"

    @validates("id")
    def _freeze_id(self, key: str, value: uuid.UUID | None) -> uuid.UUID | None:
        """
        Reject re-assigning an identity once it is set.

        :raises ValueError: If the entity already carries a different id.
        """
        current = self.__dict__.get("id")
        if current is not None and value != current:
            raise ValueError("User identifiers are immutable.")
        return value
