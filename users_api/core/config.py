"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

REPOSITORY_BACKENDS: Final[tuple[str, ...]] = ("sqlalchemy", "memory")
TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "y", "on"})


# No-op when .env is missing
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read a feature switch such as ``USE_PROXYFIX`` or ``RETURN_HTTP_NOT_ACCEPTABLE``.

    :param name: Environment variable to inspect.
    :param default: Returned when the variable is unset.
    :returns: Whether the value is one of ``TRUTHY`` (case-insensitive).
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back on garbage."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints (``/api/users`` lives here).
    SECRET_KEY: str
        Flask secret. Defaults to a development-safe placeholder.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string used by the SQLAlchemy repository.
    USERS_REPOSITORY: str
        Repository backend bound to the users resource: ``"sqlalchemy"``
        (default) or ``"memory"``.
    USERS_DEFAULT_PAGE_SIZE: int
        Page size used when ``pageSize`` is omitted from the list query.
    USERS_MAX_PAGE_SIZE: int
        Upper clamp for ``pageSize``.
    RETURN_HTTP_NOT_ACCEPTABLE: bool
        Answer ``406`` when ``Accept`` names neither JSON nor XML. When
        ``False`` such requests silently get JSON.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    USE_PROXYFIX: bool
        Trust one hop of ``X-Forwarded-*`` headers when building absolute
        links.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./users.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Users resource
    USERS_REPOSITORY = os.getenv("USERS_REPOSITORY", "sqlalchemy").strip().lower()
    USERS_DEFAULT_PAGE_SIZE = env_int("USERS_DEFAULT_PAGE_SIZE", 10)
    USERS_MAX_PAGE_SIZE = env_int("USERS_MAX_PAGE_SIZE", 20)
    RETURN_HTTP_NOT_ACCEPTABLE = env_bool("RETURN_HTTP_NOT_ACCEPTABLE", True)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging, CORS & proxies
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Keeps exceptions inside the app so the 500 problem handler is
      exercised the same way it is in production.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = False
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
