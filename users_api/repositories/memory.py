"""Process-local user repository.

Stores detached copies so callers can never mutate stored state without
going through :meth:`update`/:meth:`upsert`. A lock serializes access, which
keeps concurrent upserts of the same id consistent under threaded servers.
"""

from __future__ import annotations

import threading
import uuid

from users_api.models.user import UserEntity
from users_api.repositories.base import Page, UserRepository, page_offset
from users_api.repositories.errors import NotFoundError
from users_api.repositories.user import MUTABLE_FIELDS


def _clone(user: UserEntity, user_id: uuid.UUID) -> UserEntity:
    return UserEntity(id=user_id, **{name: getattr(user, name) for name in MUTABLE_FIELDS})


class InMemoryUserRepository(UserRepository):
    """Dictionary-backed implementation of :class:`UserRepository`."""

    def __init__(self) -> None:
        self._entities: dict[uuid.UUID, UserEntity] = {}
        self._lock = threading.Lock()

    def find_by_id(self, user_id: uuid.UUID) -> UserEntity | None:
        with self._lock:
            stored = self._entities.get(user_id)
            return _clone(stored, user_id) if stored is not None else None

    def insert(self, user: UserEntity) -> UserEntity:
        with self._lock:
            user_id = uuid.uuid4()
            self._entities[user_id] = _clone(user, user_id)
            return _clone(user, user_id)

    def update(self, user: UserEntity) -> None:
        with self._lock:
            if user.id not in self._entities:
                raise NotFoundError("User", user.id)
            self._entities[user.id] = _clone(user, user.id)

    def upsert(self, user: UserEntity) -> tuple[UserEntity, bool]:
        with self._lock:
            inserted = user.id not in self._entities
            self._entities[user.id] = _clone(user, user.id)
            return _clone(user, user.id), inserted

    def delete(self, user_id: uuid.UUID) -> None:
        with self._lock:
            self._entities.pop(user_id, None)

    def get_page(self, page_number: int, page_size: int) -> Page[UserEntity]:
        with self._lock:
            ordered = sorted(self._entities.values(), key=lambda u: (u.login, str(u.id)))
            offset = page_offset(page_number, page_size)
            items = [_clone(u, u.id) for u in ordered[offset : offset + page_size]]
            return Page(
                items=items,
                current_page=page_number,
                page_size=page_size,
                total_count=len(ordered),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)
