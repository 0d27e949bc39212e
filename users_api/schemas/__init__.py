"""Convenience exports for application schemas."""

from __future__ import annotations

from .common import PaginationQuerySchema
from .user import CreateUserSchema, UpdateUserSchema, UserSchema, validate_login

__all__ = [
    "PaginationQuerySchema",
    "CreateUserSchema",
    "UpdateUserSchema",
    "UserSchema",
    "validate_login",
]
