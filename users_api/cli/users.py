"""Flask CLI commands for the users store."""

from __future__ import annotations

import logging

import click
from faker import Faker
from flask import current_app
from flask.cli import with_appcontext

from users_api.core.extensions import db
from users_api.models.user import UserEntity
from users_api.repositories.base import UserRepository
from users_api.repositories.user import SQLAlchemyUserRepository
from users_api.uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)


def _repository() -> UserRepository:
    return current_app.extensions["users_repository"]


def _ensure_non_production() -> None:
    """Abort destructive commands when running in production."""
    if not (current_app.config.get("DEBUG") or current_app.config.get("TESTING")):
        raise click.UsageError("This command is restricted to non-production environments.")


def sample_users(count: int, *, seed: int | None = None) -> list[UserEntity]:
    """Build ``count`` transient users with alphanumeric logins."""
    faker = Faker()
    if seed is not None:
        faker.seed_instance(seed)
    users = []
    for index in range(count):
        first, last = faker.first_name(), faker.last_name()
        login = "".join(ch for ch in f"{first}{last}{index}" if ch.isalnum())
        users.append(UserEntity(login=login, first_name=first, last_name=last))
    return users


@click.group("users")
def users_cli() -> None:
    """Manage the users store."""


@users_cli.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create the users table when it does not exist yet."""
    db.create_all()
    click.echo("Users schema ready.")


@users_cli.command("seed")
@click.option("--count", default=25, show_default=True, type=click.IntRange(min=1))
@click.option("--seed", "seed_value", default=None, type=int, help="Faker seed.")
@with_appcontext
def seed_command(count: int, seed_value: int | None) -> None:
    """Insert sample users."""
    _ensure_non_production()
    users = sample_users(count, seed=seed_value)
    repository = _repository()
    if isinstance(repository, SQLAlchemyUserRepository):
        try:
            with SQLAlchemyUnitOfWork() as uow:
                for user in users:
                    uow.users.insert(user)
        except Exception as exc:
            raise click.ClickException(f"Seeding failed: {exc}") from exc
    else:
        for user in users:
            repository.insert(user)
    LOGGER.info("users.seeded count=%d", count)
    click.echo(f"Inserted {count} users.")


@users_cli.command("list")
@click.option("--page", "page_number", default=1, show_default=True, type=click.IntRange(min=1))
@click.option(
    "--size", "page_size", default=10, show_default=True, type=click.IntRange(min=1, max=20)
)
@with_appcontext
def list_command(page_number: int, page_size: int) -> None:
    """Print one page of users ordered by login."""
    page = _repository().get_page(page_number, page_size)
    for user in page:
        click.echo(f"{user.id}  {user.login:<24}  {user.full_name}")
    click.echo(
        f"page {page.current_page}/{page.total_pages}  total={page.total_count}"
    )
