"""Application factory wiring Flask extensions, the repository and blueprints."""

from __future__ import annotations

from flask import Flask

from users_api.core.config import REPOSITORY_BACKENDS, BaseConfig, get_config
from users_api.core.logger import configure_logging, init_app as init_logging
from users_api.repositories import (
    InMemoryUserRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)


def build_repository(app: Flask) -> UserRepository:
    """Instantiate the repository named by ``USERS_REPOSITORY``.

    :raises RuntimeError: If the configured backend is unknown.
    """
    backend = str(app.config.get("USERS_REPOSITORY", "sqlalchemy")).strip().lower()
    if backend == "memory":
        return InMemoryUserRepository()
    if backend == "sqlalchemy":
        return SQLAlchemyUserRepository()
    raise RuntimeError(
        f"Unknown USERS_REPOSITORY {backend!r}; expected one of {', '.join(REPOSITORY_BACKENDS)}"
    )


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    repository: UserRepository | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    Parameters
    ----------
    config:
        Object or import path passed to :meth:`flask.Config.from_object`;
        defaults to the class selected by ``APP_ENV``.
    repository:
        Repository bound to the users resource. When omitted one is built
        from ``USERS_REPOSITORY``.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from users_api.core import proxy

    proxy.init_app(app)

    from users_api.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from users_api.core import cors

    cors.init_app(app)

    repo = repository if repository is not None else build_repository(app)
    app.extensions["users_repository"] = repo
    if isinstance(repo, SQLAlchemyUserRepository):
        from users_api.uow import sqlalchemy_uow

        sqlalchemy_uow.init_app(app)

    from users_api.api import init_app as init_api

    init_api(app)

    from users_api.core import errors

    errors.init_app(app)

    from users_api import cli as app_cli

    app_cli.init_app(app)

    return app
