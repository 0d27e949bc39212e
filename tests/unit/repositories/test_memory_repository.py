"""Unit tests for :class:`users_api.repositories.InMemoryUserRepository`."""

from __future__ import annotations

import threading
import uuid

import pytest
from tests.factories.user import UserEntityFactory
from users_api.models.user import UserEntity
from users_api.repositories import InMemoryUserRepository, NotFoundError


@pytest.mark.unit
class TestInMemoryUserRepository:
    @pytest.fixture()
    def repo(self):
        return InMemoryUserRepository()

    def test_insert_assigns_new_id(self, repo):
        transient = UserEntityFactory.build(id=None, login="ann")

        stored = repo.insert(transient)

        assert stored.id is not None
        assert transient.id is None
        assert repo.find_by_id(stored.id).login == "ann"

    def test_insert_ignores_caller_id(self, repo):
        given = uuid.uuid4()

        stored = repo.insert(UserEntityFactory.build(id=given))

        assert stored.id != given
        assert repo.find_by_id(given) is None

    def test_returned_entities_are_detached(self, repo):
        stored = repo.insert(UserEntityFactory.build(login="ann"))

        stored.login = "mutated"
        fetched = repo.find_by_id(stored.id)
        fetched.login = "again"

        assert repo.find_by_id(stored.id).login == "ann"

    def test_update_overwrites(self, repo):
        stored = repo.insert(UserEntityFactory.build(login="ann", games_played=1))
        stored.login = "bob"
        stored.games_played = 2

        repo.update(stored)

        fetched = repo.find_by_id(stored.id)
        assert (fetched.login, fetched.games_played) == ("bob", 2)

    def test_update_missing_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.update(UserEntityFactory.build())

    def test_upsert_reports_insertion(self, repo):
        user = UserEntityFactory.build(login="ann")

        _, inserted = repo.upsert(user)
        user.login = "bob"
        stored, inserted_again = repo.upsert(user)

        assert inserted is True
        assert inserted_again is False
        assert stored.id == user.id
        assert repo.find_by_id(user.id).login == "bob"
        assert len(repo) == 1

    def test_delete_is_idempotent(self, repo):
        stored = repo.insert(UserEntityFactory.build())

        repo.delete(stored.id)
        repo.delete(stored.id)

        assert repo.find_by_id(stored.id) is None

    def test_get_page_orders_by_login_then_id(self, repo):
        for login in ("carl", "amy", "bea", "amy"):
            repo.insert(UserEntity(login=login))

        page = repo.get_page(1, 3)

        logins = [u.login for u in page]
        assert logins == ["amy", "amy", "bea"]
        assert str(page.items[0].id) < str(page.items[1].id)
        assert page.total_count == 4
        assert page.total_pages == 2

    def test_get_page_beyond_end(self, repo):
        repo.insert(UserEntity(login="ann"))

        page = repo.get_page(5, 10)

        assert list(page) == []
        assert page.current_page == 5
        assert page.total_count == 1

    def test_concurrent_upserts_of_same_id(self, repo):
        user_id = uuid.uuid4()
        results: list[bool] = []

        def worker(n: int) -> None:
            _, inserted = repo.upsert(UserEntity(id=user_id, login=f"u{n}"))
            results.append(inserted)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1
        assert len(repo) == 1
