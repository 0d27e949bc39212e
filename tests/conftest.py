"""Global pytest fixtures for the users API."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
from flask import Flask

from users_api import create_app
from users_api.core.config import TestingConfig
from users_api.core.extensions import db
from users_api.repositories import InMemoryUserRepository


class MemoryTestConfig(TestingConfig):
    """Testing config bound to the process-local repository."""

    USERS_REPOSITORY = "memory"
    USE_PROXYFIX = True


class SQLTestConfig(TestingConfig):
    """Testing config bound to SQLAlchemy over in-memory SQLite."""

    USERS_REPOSITORY = "sqlalchemy"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


@pytest.fixture()
def repository() -> InMemoryUserRepository:
    """Fresh in-memory repository per test."""

    return InMemoryUserRepository()


@pytest.fixture()
def app(repository: InMemoryUserRepository) -> Generator[Flask, None, None]:
    """Application wired to the ``repository`` fixture."""

    application = create_app(MemoryTestConfig, repository=repository)
    with application.app_context():
        yield application


@pytest.fixture()
def client(app: Flask) -> Any:
    """Return a Flask test client."""

    return app.test_client()


@pytest.fixture()
def sql_app() -> Generator[Flask, None, None]:
    """Application backed by SQLAlchemy; schema created and dropped per test."""

    application = create_app(SQLTestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def sql_client(sql_app: Flask) -> Any:
    return sql_app.test_client()


@pytest.fixture()
def session(sql_app: Flask) -> Any:
    """The Flask-scoped SQLAlchemy session of ``sql_app``."""

    return db.session


@pytest.fixture(autouse=True)
def _factories_session(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Bind the SQLAlchemy factories to ``session`` when the test uses it."""

    from tests.factories import SQLAlchemySession

    if "session" in request.fixturenames or "sql_app" in request.fixturenames:
        SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)
