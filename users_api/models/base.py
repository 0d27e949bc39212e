"""Reusable SQLAlchemy mixins shared by domain models (typed 2.0)."""

from __future__ import annotations

import uuid

from sqlalchemy import Uuid
from sqlalchemy.orm import Mapped, mapped_column


class UUIDPKMixin:
    """Expose an opaque UUID primary key column named ``id``.

    The key is assigned by the repository (insert) or by the caller (upsert)
    and never changes afterwards.
    """

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)


class ReprMixin:
    """Provide a concise ``__repr__`` including the class name and id."""

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        key = getattr(self, "id", None)
        return f"<{cls} id={key}>"
