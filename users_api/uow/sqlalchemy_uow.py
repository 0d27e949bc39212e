"""
SQLAlchemy implementation of UnitOfWork for Flask.

Two shapes share the same rules (commit on success, rollback on failure):

* :class:`SQLAlchemyUnitOfWork`, an explicit context manager for scripts and
  CLI commands;
* :func:`init_app`, a session-per-request unit of work wrapped around every
  HTTP request served by the SQLAlchemy repository.
"""

from __future__ import annotations

import logging

from flask import Flask, Response
from sqlalchemy.orm import Session

from users_api.core.extensions import db
from users_api.repositories.user import SQLAlchemyUserRepository
from users_api.uow.base import UnitOfWork

log = logging.getLogger(__name__)


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The repository shares the session so every write lands in one
    transaction.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session = session if session is not None else db.session
        self.users = SQLAlchemyUserRepository(session=self.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # The session begins lazily on the first statement
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


def init_app(app: Flask) -> None:
    """Commit the request session after successful responses, else roll back.

    A response with status ``>= 400`` never persists partial writes. Commit
    failures are rolled back and re-raised to the default error handling.
    """

    @app.after_request
    def _finish_transaction(response: Response) -> Response:
        session = db.session
        if response.status_code >= 400:
            session.rollback()
            return response
        try:
            session.commit()
        except Exception:
            session.rollback()
            log.error("Request transaction commit failed", exc_info=True)
            raise
        return response
