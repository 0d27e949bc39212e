"""Repository package exposing persistence-layer access for users."""

from __future__ import annotations

from users_api.repositories.base import Page, UserRepository, page_offset
from users_api.repositories.errors import NotFoundError, RepositoryError
from users_api.repositories.memory import InMemoryUserRepository
from users_api.repositories.user import SQLAlchemyUserRepository

__all__ = [
    "Page",
    "UserRepository",
    "page_offset",
    "NotFoundError",
    "RepositoryError",
    "InMemoryUserRepository",
    "SQLAlchemyUserRepository",
]
