"""End-to-end tests for ``/api/users`` over the in-memory repository."""

from __future__ import annotations

import json
import uuid
from urllib.parse import parse_qs, urlsplit
from xml.etree import ElementTree as ET

import pytest
from tests.helpers.assertions import assert_problem, assert_validation_errors
from tests.helpers.http import (
    XML_ACCEPT,
    build_url,
    create_user,
    json_headers,
    pagination_header,
    patch_headers,
)
from users_api.models.user import UserEntity

USERS_URL = "/api/users"
XSI_NIL = "{http://www.w3.org/2001/XMLSchema-instance}nil"


def _user_url(user_id) -> str:
    return f"{USERS_URL}/{user_id}"


def _seed(repository, count: int) -> list[UserEntity]:
    return [
        repository.insert(UserEntity(login=f"user{i:02d}", first_name="F", last_name=f"L{i}"))
        for i in range(count)
    ]


def _link_query(link: str) -> dict[str, list[str]]:
    parts = urlsplit(link)
    assert parts.path == USERS_URL
    return parse_qs(parts.query)


@pytest.mark.integration
class TestGetUser:
    def test_get_after_post_returns_same_user(self, client):
        """Create a user and read it back through its id."""
        user_id = create_user(client, login="alice", firstName="Alice", lastName="Smith")

        resp = client.get(_user_url(user_id))

        assert resp.status_code == 200
        assert resp.headers["Content-Type"] == "application/json; charset=utf-8"
        body = resp.get_json()
        assert body == {
            "id": user_id,
            "login": "alice",
            "fullName": "Smith Alice",
            "gamesPlayed": 0,
            "currentGameId": None,
        }

    def test_unknown_id_is_404(self, client):
        resp = client.get(_user_url(uuid.uuid4()))

        assert_problem(resp, 404, "not_found")

    def test_malformed_id_is_404(self, client):
        """A segment that is not a UUID behaves like an unknown user."""
        resp = client.get(_user_url("not-a-guid"))

        assert_problem(resp, 404, "not_found")

    def test_head_returns_headers_only(self, client):
        user_id = create_user(client)

        resp = client.head(_user_url(user_id))

        assert resp.status_code == 200
        assert resp.data == b""
        assert resp.headers["Content-Type"] == "application/json; charset=utf-8"

    def test_head_unknown_id_is_404(self, client):
        resp = client.head(_user_url(uuid.uuid4()))

        assert resp.status_code == 404
        assert resp.data == b""


@pytest.mark.integration
class TestCreateUser:
    def test_created_with_location_and_id_body(self, client, repository):
        resp = client.post(USERS_URL, json={"login": "bob42"}, headers=json_headers())

        assert resp.status_code == 201
        user_id = resp.get_json()
        assert uuid.UUID(user_id)
        assert resp.headers["Location"] == f"http://localhost{USERS_URL}/{user_id}"
        assert len(repository) == 1

    def test_defaults_applied_when_names_omitted(self, client):
        resp = client.post(USERS_URL, json={"login": "carol"})
        user_id = resp.get_json()

        body = client.get(_user_url(user_id)).get_json()

        assert body["fullName"] == "Doe John"

    def test_missing_body_is_400(self, client, repository):
        resp = client.post(USERS_URL)

        assert_problem(resp, 400, "bad_request")
        assert len(repository) == 0

    def test_malformed_json_is_400(self, client):
        resp = client.post(USERS_URL, data="{not json", content_type="application/json")

        assert_problem(resp, 400, "bad_request")

    def test_array_body_is_400(self, client):
        resp = client.post(USERS_URL, json=[{"login": "x"}])

        assert_problem(resp, 400, "bad_request")

    def test_missing_login_is_422_and_creates_nothing(self, client, repository):
        resp = client.post(USERS_URL, json={"firstName": "No", "lastName": "Login"})

        errors = assert_validation_errors(resp, "login")
        assert errors["login"]
        assert len(repository) == 0

    @pytest.mark.parametrize("login", ["", "has space", "dash-ed", "émoji😀"])
    def test_non_alphanumeric_login_is_422(self, client, login):
        resp = client.post(USERS_URL, json={"login": login})

        assert_validation_errors(resp, "login")

    def test_unknown_fields_are_ignored(self, client):
        resp = client.post(USERS_URL, json={"login": "dave", "gamesPlayed": 99})

        assert resp.status_code == 201
        body = client.get(_user_url(resp.get_json())).get_json()
        assert body["gamesPlayed"] == 0


@pytest.mark.integration
class TestUpdateUser:
    def test_put_new_id_creates_user(self, client):
        user_id = uuid.uuid4()

        resp = client.put(
            _user_url(user_id),
            json={"login": "eve", "firstName": "Eve", "lastName": "Adams"},
        )

        assert resp.status_code == 201
        assert resp.get_json() == str(user_id)
        assert resp.headers["Location"].endswith(_user_url(user_id))
        body = client.get(_user_url(user_id)).get_json()
        assert body["login"] == "eve"
        assert body["fullName"] == "Adams Eve"

    def test_put_existing_id_overwrites(self, client):
        user_id = create_user(client, login="frank", firstName="Frank", lastName="Old")

        resp = client.put(
            _user_url(user_id),
            json={"login": "franky", "firstName": "Francis", "lastName": "New"},
        )

        assert resp.status_code == 204
        assert resp.data == b""
        body = client.get(_user_url(user_id)).get_json()
        assert body["login"] == "franky"
        assert body["fullName"] == "New Francis"

    def test_put_keeps_entity_owned_fields(self, client, repository):
        user = repository.insert(UserEntity(login="gina", games_played=7))
        game_id = uuid.uuid4()
        user.current_game_id = game_id
        repository.update(user)

        client.put(
            _user_url(user.id),
            json={"login": "gina", "firstName": "Gina", "lastName": "Lopez"},
        )

        stored = repository.find_by_id(user.id)
        assert stored.games_played == 7
        assert stored.current_game_id == game_id

    @pytest.mark.parametrize("raw_id", [str(uuid.UUID(int=0)), "not-a-guid"])
    def test_put_nil_or_malformed_id_is_400(self, client, repository, raw_id):
        resp = client.put(
            _user_url(raw_id),
            json={"login": "h", "firstName": "H", "lastName": "H"},
        )

        assert_problem(resp, 400, "bad_request")
        assert len(repository) == 0

    def test_put_without_body_is_400(self, client):
        resp = client.put(_user_url(uuid.uuid4()))

        assert_problem(resp, 400)

    def test_put_requires_every_field(self, client):
        resp = client.put(_user_url(uuid.uuid4()), json={"login": "ivan"})

        assert_validation_errors(resp, "firstName", "lastName")


@pytest.mark.integration
class TestPatchUser:
    @pytest.fixture()
    def user_id(self, client):
        return create_user(client, login="jack", firstName="Jack", lastName="Black")

    def _patch(self, client, user_id, document):
        return client.patch(_user_url(user_id), data=json.dumps(document), headers=patch_headers())

    def test_empty_document_is_noop(self, client, user_id):
        before = client.get(_user_url(user_id)).get_json()

        resp = self._patch(client, user_id, [])

        assert resp.status_code == 204
        assert client.get(_user_url(user_id)).get_json() == before

    def test_replace_updates_field(self, client, user_id):
        resp = self._patch(client, user_id, [{"op": "replace", "path": "/lastName", "value": "White"}])

        assert resp.status_code == 204
        assert client.get(_user_url(user_id)).get_json()["fullName"] == "White Jack"

    def test_paths_ignore_case(self, client, user_id):
        resp = self._patch(client, user_id, [{"op": "replace", "path": "/FirstName", "value": "Jill"}])

        assert resp.status_code == 204
        assert client.get(_user_url(user_id)).get_json()["fullName"] == "Black Jill"

    def test_operations_apply_in_order(self, client, user_id):
        document = [
            {"op": "replace", "path": "/login", "value": "tmp"},
            {"op": "copy", "from": "/login", "path": "/firstName"},
            {"op": "test", "path": "/firstName", "value": "tmp"},
        ]

        resp = self._patch(client, user_id, document)

        assert resp.status_code == 204
        body = client.get(_user_url(user_id)).get_json()
        assert body["login"] == "tmp"
        assert body["fullName"] == "Black tmp"

    def test_unknown_path_is_422(self, client, user_id):
        resp = self._patch(client, user_id, [{"op": "replace", "path": "/nickname", "value": "x"}])

        errors = assert_validation_errors(resp, "nickname")
        assert "Operation 0 (replace)" in errors["nickname"][0]

    def test_invalid_op_is_422_keyed_by_path(self, client, user_id):
        resp = self._patch(client, user_id, [{"op": "explode", "path": "/login"}])

        assert_validation_errors(resp, "login")

    def test_non_object_operation_is_reported(self, client, user_id):
        resp = self._patch(client, user_id, ["replace /login"])

        assert_validation_errors(resp, "$patch")

    def test_failed_operation_does_not_persist_others(self, client, user_id):
        document = [
            {"op": "replace", "path": "/login", "value": "changed"},
            {"op": "test", "path": "/lastName", "value": "Mismatch"},
        ]

        resp = self._patch(client, user_id, document)

        assert_validation_errors(resp, "lastName")
        assert client.get(_user_url(user_id)).get_json()["login"] == "jack"

    def test_patched_document_is_validated(self, client, user_id):
        document = [
            {"op": "replace", "path": "/login", "value": "not valid"},
            {"op": "remove", "path": "/firstName"},
        ]

        resp = self._patch(client, user_id, document)

        assert_validation_errors(resp, "login", "firstName")

    def test_added_member_is_rejected(self, client, user_id):
        resp = self._patch(client, user_id, [{"op": "add", "path": "/gamesPlayed", "value": 5}])

        assert_validation_errors(resp, "gamesPlayed")

    def test_patch_and_validation_errors_are_merged(self, client, user_id):
        document = [
            {"op": "remove", "path": "/missing"},
            {"op": "replace", "path": "/login", "value": "a b"},
        ]

        resp = self._patch(client, user_id, document)

        assert_validation_errors(resp, "missing", "login")

    def test_unknown_user_is_404(self, client):
        resp = self._patch(client, uuid.uuid4(), [])

        assert_problem(resp, 404, "not_found")

    def test_malformed_id_is_404(self, client):
        resp = self._patch(client, "nope", [])

        assert_problem(resp, 404)

    @pytest.mark.parametrize("raw", ["null", "", '{"op": "replace"}'])
    def test_missing_or_non_array_document_is_400(self, client, user_id, raw):
        resp = client.patch(_user_url(user_id), data=raw, headers=patch_headers())

        assert_problem(resp, 400, "bad_request")


@pytest.mark.integration
class TestDeleteUser:
    def test_delete_then_get(self, client, repository):
        user_id = create_user(client)

        resp = client.delete(_user_url(user_id))

        assert resp.status_code == 204
        assert resp.data == b""
        assert client.get(_user_url(user_id)).status_code == 404
        assert len(repository) == 0

    def test_delete_unknown_is_404(self, client):
        assert_problem(client.delete(_user_url(uuid.uuid4())), 404)

    def test_delete_twice(self, client):
        user_id = create_user(client)

        assert client.delete(_user_url(user_id)).status_code == 204
        assert client.delete(_user_url(user_id)).status_code == 404


@pytest.mark.integration
class TestListUsers:
    def test_default_page(self, client, repository):
        _seed(repository, 25)

        resp = client.get(USERS_URL)

        assert resp.status_code == 200
        body = resp.get_json()
        assert [u["login"] for u in body] == [f"user{i:02d}" for i in range(10)]
        meta = pagination_header(resp)
        assert meta["previousPageLink"] is None
        assert _link_query(meta["nextPageLink"]) == {"pageNumber": ["2"], "pageSize": ["10"]}
        assert meta["totalCount"] == 25
        assert meta["pageSize"] == 10
        assert meta["currentPage"] == 1
        assert meta["totalPages"] == 3

    def test_header_is_compact_and_ordered(self, client, repository):
        _seed(repository, 3)

        raw = client.get(build_url(USERS_URL, pageNumber=1, pageSize=2)).headers["X-Pagination"]

        assert list(json.loads(raw)) == [
            "previousPageLink",
            "nextPageLink",
            "totalCount",
            "pageSize",
            "currentPage",
            "totalPages",
        ]
        assert ", " not in raw and '": ' not in raw
        assert raw.startswith('{"previousPageLink":null,"nextPageLink":"http://localhost/api/users?')

    def test_middle_page_links_both_ways(self, client, repository):
        _seed(repository, 25)

        resp = client.get(build_url(USERS_URL, pageNumber=2, pageSize=10))

        meta = pagination_header(resp)
        assert _link_query(meta["previousPageLink"]) == {"pageNumber": ["1"], "pageSize": ["10"]}
        assert _link_query(meta["nextPageLink"]) == {"pageNumber": ["3"], "pageSize": ["10"]}
        assert meta["previousPageLink"].startswith("http://localhost/")
        assert resp.get_json()[0]["login"] == "user10"

    def test_last_page_has_no_next(self, client, repository):
        _seed(repository, 25)

        resp = client.get(build_url(USERS_URL, pageNumber=3, pageSize=10))

        meta = pagination_header(resp)
        assert len(resp.get_json()) == 5
        assert meta["nextPageLink"] is None
        assert _link_query(meta["previousPageLink"]) == {"pageNumber": ["2"], "pageSize": ["10"]}

    def test_page_beyond_last_is_empty(self, client, repository):
        _seed(repository, 5)

        resp = client.get(build_url(USERS_URL, pageNumber=4, pageSize=2))

        meta = pagination_header(resp)
        assert resp.get_json() == []
        assert meta["nextPageLink"] is None
        assert _link_query(meta["previousPageLink"])["pageNumber"] == ["3"]
        assert meta["currentPage"] == 4
        assert meta["totalPages"] == 3

    def test_empty_collection(self, client):
        resp = client.get(USERS_URL)

        meta = pagination_header(resp)
        assert resp.get_json() == []
        assert meta == {
            "previousPageLink": None,
            "nextPageLink": None,
            "totalCount": 0,
            "pageSize": 10,
            "currentPage": 1,
            "totalPages": 0,
        }

    @pytest.mark.parametrize(
        ("page_number", "page_size", "expected_number", "expected_size"),
        [
            (0, 10, 1, 10),
            (-3, 10, 1, 10),
            (1, 0, 1, 1),
            (1, -5, 1, 1),
            (1, 100, 1, 20),
            (2, 21, 2, 20),
        ],
    )
    def test_paging_arguments_are_clamped(
        self, client, repository, page_number, page_size, expected_number, expected_size
    ):
        _seed(repository, 45)

        resp = client.get(build_url(USERS_URL, pageNumber=page_number, pageSize=page_size))

        meta = pagination_header(resp)
        assert meta["currentPage"] == expected_number
        assert meta["pageSize"] == expected_size
        assert len(resp.get_json()) == expected_size
        if meta["nextPageLink"]:
            assert _link_query(meta["nextPageLink"])["pageSize"] == [str(expected_size)]

    @pytest.mark.parametrize(
        ("query", "expected_number", "expected_size"),
        [
            ({"pageNumber": "abc"}, 1, 10),
            ({"pageSize": "1.5"}, 1, 10),
            ({"pageNumber": "abc", "pageSize": "3"}, 1, 3),
            ({"pageNumber": "2", "pageSize": "x"}, 2, 10),
            ({"pageNumber": str(2**31), "pageSize": "5"}, 1, 5),
            ({"pageNumber": "99999999999999999999", "pageSize": "5"}, 1, 5),
        ],
    )
    def test_undecodable_paging_values_fall_back_to_defaults(
        self, client, repository, query, expected_number, expected_size
    ):
        """Each bad query value is replaced by its default; the other one is kept."""
        _seed(repository, 25)

        resp = client.get(build_url(USERS_URL, **query))

        assert resp.status_code == 200
        meta = pagination_header(resp)
        assert meta["currentPage"] == expected_number
        assert meta["pageSize"] == expected_size

    def test_largest_page_number_is_served(self, client, repository):
        _seed(repository, 3)

        resp = client.get(build_url(USERS_URL, pageNumber=2**31 - 1, pageSize=20))

        assert resp.status_code == 200
        assert resp.get_json() == []
        meta = pagination_header(resp)
        assert meta["nextPageLink"] is None
        assert _link_query(meta["previousPageLink"])["pageNumber"] == [str(2**31 - 2)]

    def test_ordered_by_login(self, client, repository):
        for login in ("zed", "amy", "mia"):
            repository.insert(UserEntity(login=login))

        body = client.get(USERS_URL).get_json()

        assert [u["login"] for u in body] == ["amy", "mia", "zed"]

    def test_links_follow_forwarded_host(self, client, repository):
        _seed(repository, 3)

        resp = client.get(
            build_url(USERS_URL, pageSize=1),
            headers={"X-Forwarded-Proto": "https", "X-Forwarded-Host": "api.example.com"},
        )

        assert pagination_header(resp)["nextPageLink"].startswith("https://api.example.com/api/users?")

    def test_configured_default_page_size(self, app, client, repository):
        app.config["USERS_DEFAULT_PAGE_SIZE"] = 3
        _seed(repository, 5)

        resp = client.get(USERS_URL)

        assert pagination_header(resp)["pageSize"] == 3
        assert len(resp.get_json()) == 3


@pytest.mark.integration
class TestOptionsAndNegotiation:
    def test_options_advertises_methods(self, client):
        resp = client.options(USERS_URL)

        assert resp.status_code == 200
        assert resp.headers["Allow"] == "GET,POST,OPTIONS"
        assert resp.data == b""

    def test_get_user_as_xml(self, client):
        user_id = create_user(client, login="kate", firstName="Kate", lastName="Bush")

        resp = client.get(_user_url(user_id), headers=XML_ACCEPT)

        assert resp.status_code == 200
        assert resp.mimetype == "application/xml"
        assert resp.data.startswith(b'<?xml version="1.0" encoding="utf-8"?>')
        root = ET.fromstring(resp.data)
        assert root.tag == "UserDto"
        assert root.findtext("Id") == user_id
        assert root.findtext("Login") == "kate"
        assert root.findtext("FullName") == "Bush Kate"
        assert root.findtext("GamesPlayed") == "0"
        assert root.find("CurrentGameId").get(XSI_NIL) == "true"

    def test_list_as_xml(self, client, repository):
        _seed(repository, 2)

        resp = client.get(USERS_URL, headers={"Accept": "text/xml"})

        assert resp.mimetype == "text/xml"
        root = ET.fromstring(resp.data)
        assert root.tag == "ArrayOfUserDto"
        assert [node.findtext("Login") for node in root.findall("UserDto")] == ["user00", "user01"]
        assert "X-Pagination" in resp.headers

    def test_created_id_as_xml(self, client):
        resp = client.post(USERS_URL, json={"login": "leo"}, headers=XML_ACCEPT)

        assert resp.status_code == 201
        root = ET.fromstring(resp.data)
        assert root.tag == "guid"
        assert resp.headers["Location"].endswith(root.text)

    def test_wildcard_accept_yields_json(self, client):
        resp = client.get(USERS_URL, headers={"Accept": "*/*"})

        assert resp.mimetype == "application/json"

    def test_unsupported_accept_is_406_without_side_effects(self, client, repository):
        resp = client.post(USERS_URL, json={"login": "mo"}, headers={"Accept": "text/csv"})

        assert_problem(resp, 406, "not_acceptable")
        assert len(repository) == 0

    def test_unsupported_accept_falls_back_when_disabled(self, app, client):
        app.config["RETURN_HTTP_NOT_ACCEPTABLE"] = False

        resp = client.get(USERS_URL, headers={"Accept": "text/csv"})

        assert resp.status_code == 200
        assert resp.mimetype == "application/json"
