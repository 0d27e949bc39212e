"""SQLAlchemy-backed user repository."""

from __future__ import annotations

import uuid
from typing import cast

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from users_api.core.extensions import db
from users_api.models.user import UserEntity
from users_api.repositories.base import Page, UserRepository, page_offset
from users_api.repositories.errors import NotFoundError

# Columns copied by ``update``/``upsert``; ``id`` is never reassigned
MUTABLE_FIELDS = ("login", "first_name", "last_name", "games_played", "current_game_id")


class SQLAlchemyUserRepository(UserRepository):
    """Persistence-only repository for :class:`UserEntity`.

    Writes are flushed, never committed: the caller's unit of work decides
    whether the transaction survives.
    """

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session shared across the unit of work. Falls back to
            the Flask-scoped ``db.session`` when omitted.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session = session

    @property
    def session(self) -> Session:
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def find_by_id(self, user_id: uuid.UUID) -> UserEntity | None:
        return self.session.get(UserEntity, user_id)

    def insert(self, user: UserEntity) -> UserEntity:
        entity = UserEntity(id=uuid.uuid4(), **_mutable_state(user))
        self.session.add(entity)
        self.session.flush()
        return entity

    def update(self, user: UserEntity) -> None:
        stored = self.find_by_id(user.id)
        if stored is None:
            raise NotFoundError("User", user.id)
        _copy_state(user, stored)
        self.session.flush()

    def upsert(self, user: UserEntity) -> tuple[UserEntity, bool]:
        stored = self.find_by_id(user.id)
        if stored is None:
            stored = UserEntity(id=user.id, **_mutable_state(user))
            self.session.add(stored)
            self.session.flush()
            return stored, True
        _copy_state(user, stored)
        self.session.flush()
        return stored, False

    def delete(self, user_id: uuid.UUID) -> None:
        stored = self.find_by_id(user_id)
        if stored is not None:
            self.session.delete(stored)
            self.session.flush()

    def get_page(self, page_number: int, page_size: int) -> Page[UserEntity]:
        total = int(self.session.execute(select(func.count()).select_from(UserEntity)).scalar_one())
        stmt = (
            select(UserEntity)
            .order_by(UserEntity.login.asc(), UserEntity.id.asc())
            .offset(page_offset(page_number, page_size))
            .limit(page_size)
        )
        items = list(self.session.execute(stmt).scalars().all())
        return Page(items=items, current_page=page_number, page_size=page_size, total_count=total)


def _mutable_state(user: UserEntity) -> dict[str, object]:
    return {name: getattr(user, name) for name in MUTABLE_FIELDS}


def _copy_state(source: UserEntity, target: UserEntity) -> None:
    # Same instance when the caller mutated the object loaded from this session
    if source is target:
        return
    for name, value in _mutable_state(source).items():
        setattr(target, name, value)
