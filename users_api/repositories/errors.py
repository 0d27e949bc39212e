"""
Repository-level exceptions.

These exceptions never depend on Flask or HTTP. The translation to RFC 7807
responses happens in :mod:`users_api.core.errors`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class RepositoryError(Exception):
    """Base class for all repository-level errors."""


@dataclass(slots=True)
class NotFoundError(RepositoryError):
    """
    Raised when an operation targets an entity that does not exist.

    :param entity: Entity name (e.g., ``"User"``).
    :type entity: str
    :param key: Identifier that was looked up.
    :type key: Any
    """

    entity: str
    key: Any

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"
