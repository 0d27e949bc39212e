"""Repository contract and pagination value objects.

The users endpoint depends only on :class:`UserRepository`; concrete
backends live in :mod:`users_api.repositories.user` (SQLAlchemy) and
:mod:`users_api.repositories.memory` (process-local).

Design decisions
----------------
* Repositories remain persistence-only: no HTTP, no DTOs, no validation.
* The SQLAlchemy backend never commits; the request-scoped unit of work in
  :mod:`users_api.uow.sqlalchemy_uow` owns transaction boundaries.
* Listing order is deterministic (login, then id) so pages are stable.
"""

from __future__ import annotations

import math
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from users_api.models.user import UserEntity

E = TypeVar("E")
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Page(Generic[E]):
    """A read-only slice of a collection with its position metadata.

    :param items: Entities on the current page.
    :type items: Sequence[E]
    :param current_page: 1-based page number that was requested.
    :type current_page: int
    :param page_size: Maximum number of items per page.
    :type page_size: int
    :param total_count: Number of items in the whole collection.
    :type total_count: int
    """

    items: Sequence[E]
    current_page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        """``ceil(total_count / page_size)``; zero for an empty collection."""
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    def map(self, func: Callable[[E], T]) -> Page[T]:
        """Return a page of ``func(item)`` with identical metadata."""
        return Page(
            items=[func(item) for item in self.items],
            current_page=self.current_page,
            page_size=self.page_size,
            total_count=self.total_count,
        )

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def page_offset(page_number: int, page_size: int) -> int:
    """Zero-based offset of the first item of ``page_number``."""
    return (max(int(page_number), 1) - 1) * max(int(page_size), 1)


class UserRepository(ABC):
    """Persistence contract consumed by the users endpoint."""

    @abstractmethod
    def find_by_id(self, user_id: uuid.UUID) -> UserEntity | None:
        """Return the user with ``user_id`` or ``None``."""

    @abstractmethod
    def insert(self, user: UserEntity) -> UserEntity:
        """Store ``user`` under a freshly generated id and return it."""

    @abstractmethod
    def update(self, user: UserEntity) -> None:
        """
        Overwrite the stored user carrying ``user.id``.

        :raises users_api.repositories.errors.NotFoundError: If absent.
        """

    @abstractmethod
    def upsert(self, user: UserEntity) -> tuple[UserEntity, bool]:
        """Update ``user`` or insert it under its own id.

        :returns: The stored entity and ``True`` when a new row was inserted.
        """

    @abstractmethod
    def delete(self, user_id: uuid.UUID) -> None:
        """Remove the user with ``user_id``; missing ids are ignored."""

    @abstractmethod
    def get_page(self, page_number: int, page_size: int) -> Page[UserEntity]:
        """Return one page of users ordered by login then id."""
