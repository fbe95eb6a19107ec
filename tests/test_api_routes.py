"""
tests/test_api_routes.py -- Integration tests for the auth and media routes.

Covers:
  - Registration: 201 + token, duplicates 403, malformed bodies 400
  - Login: username or email, bad credentials 401, supersedes the previous token
  - Logout: 501
  - Media create (single and many=true), list with filters and pages,
    fetch and delete by id, owner isolation, 404 for unknown or malformed ids
  - Error envelope shape on every failure
"""

from __future__ import annotations

from conftest import auth_headers, media_payload, register


def _assert_error(resp, status_code: int, code: str) -> dict:
    assert resp.status_code == status_code, resp.text
    error = resp.json()["error"]
    assert error["code"] == code
    assert error["message"]
    return error


def _login(client, user: str, password: str = "secret-pass"):
    return client.post("/api/v1/login", json={"user": user, "password": password})


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_register_returns_token(self, api_client):
        resp = api_client.post(
            "/api/v1/register",
            json={"user": "reg_ok", "email": "reg_ok@example.com", "password": "pw"},
        )
        assert resp.status_code == 201
        assert resp.json()["token"]
        assert resp.headers["Cache-Control"] == "no-store"

    def test_token_from_register_is_usable(self, api_client):
        token = register(api_client, "reg_usable")
        resp = api_client.get("/api/v1/media", headers=auth_headers(token))
        assert resp.status_code == 200

    def test_duplicate_username(self, api_client):
        register(api_client, "reg_dup")
        resp = api_client.post(
            "/api/v1/register",
            json={"user": "reg_dup", "email": "other_dup@example.com", "password": "pw"},
        )
        _assert_error(resp, 403, "duplicate")

    def test_duplicate_email_ignores_case(self, api_client):
        register(api_client, "reg_mail", email="reg_mail@example.com")
        resp = api_client.post(
            "/api/v1/register",
            json={"user": "reg_mail2", "email": "REG_MAIL@example.com", "password": "pw"},
        )
        _assert_error(resp, 403, "duplicate")

    def test_missing_field(self, api_client):
        resp = api_client.post("/api/v1/register", json={"user": "reg_missing", "password": "pw"})
        error = _assert_error(resp, 400, "validation_error")
        assert error["detail"] == "email"
        assert "email" in error["message"]

    def test_invalid_email(self, api_client):
        resp = api_client.post(
            "/api/v1/register",
            json={"user": "reg_bad_mail", "email": "not-an-email", "password": "pw"},
        )
        _assert_error(resp, 400, "validation_error")

    def test_empty_body(self, api_client):
        resp = api_client.post("/api/v1/register", json={})
        _assert_error(resp, 400, "validation_error")


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


class TestLogin:
    def test_login_by_username(self, api_client):
        register(api_client, "login_user")
        resp = _login(api_client, "login_user")
        assert resp.status_code == 200
        assert resp.json()["token"]
        assert resp.headers["Cache-Control"] == "no-store"

    def test_login_by_email(self, api_client):
        register(api_client, "login_mail")
        resp = _login(api_client, "login_mail@example.com")
        assert resp.status_code == 200

    def test_login_with_mixed_case_email_as_registered(self, api_client):
        register(api_client, "login_case", email="Login.Case@Example.com")
        resp = _login(api_client, "Login.Case@Example.com")
        assert resp.status_code == 200, resp.text
        assert _login(api_client, "LOGIN.CASE@EXAMPLE.COM").status_code == 200

    def test_username_login_stays_case_sensitive(self, api_client):
        register(api_client, "login_exact")
        _assert_error(_login(api_client, "LOGIN_EXACT"), 401, "unauthenticated")

    def test_wrong_password(self, api_client):
        register(api_client, "login_wrong")
        resp = _login(api_client, "login_wrong", "not-the-password")
        _assert_error(resp, 401, "unauthenticated")

    def test_unknown_user_same_error(self, api_client):
        resp = _login(api_client, "login_nobody")
        error = _assert_error(resp, 401, "unauthenticated")
        assert error["message"] == "Invalid username or password."

    def test_missing_password(self, api_client):
        resp = api_client.post("/api/v1/login", json={"user": "login_user"})
        error = _assert_error(resp, 400, "validation_error")
        assert error["detail"] == "password"

    def test_login_supersedes_previous_token(self, api_client):
        token_a = register(api_client, "login_twice")
        token_b = _login(api_client, "login_twice").json()["token"]
        assert token_a != token_b

        _assert_error(api_client.get("/api/v1/media", headers=auth_headers(token_a)), 401, "unauthenticated")
        assert api_client.get("/api/v1/media", headers=auth_headers(token_b)).status_code == 200

    def test_only_one_ledger_row_after_repeated_logins(self, api_client):
        register(api_client, "login_many")
        for _ in range(3):
            assert _login(api_client, "login_many").status_code == 200
        store = api_client.app.state.user_store
        user = store.get_by_username("login_many")
        assert len(store.list_tokens_by_owner(user.id)) == 1


def test_logout_not_implemented(api_client):
    _assert_error(api_client.post("/api/v1/logout"), 501, "not_implemented")


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------


class TestAddMedia:
    def test_add_single(self, api_client):
        token = register(api_client, "add_single")
        resp = api_client.post("/api/v1/media/addMedia", json=media_payload(), headers=auth_headers(token))
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"] > 0
        assert data["name"] == "Spirited Away"
        assert data["completedDate"] == "2023-08-20"
        assert data["mediaType"] == "anime"
        assert data["language"] == "sub-spanish"
        assert data["score"] == 9.5

    def test_owner_comes_from_token(self, api_client):
        token = register(api_client, "add_owner")
        user = api_client.app.state.user_store.get_by_username("add_owner")
        resp = api_client.post(
            "/api/v1/media/addMedia",
            json={**media_payload(), "owner": 999999},
            headers=auth_headers(token),
        )
        assert resp.status_code == 201
        assert resp.json()["owner"] == user.id

    def test_add_many(self, api_client):
        token = register(api_client, "add_many")
        body = [media_payload(name=f"item {n}") for n in range(3)]
        resp = api_client.post("/api/v1/media/addMedia?many=true", json=body, headers=auth_headers(token))
        assert resp.status_code == 201
        assert [d["name"] for d in resp.json()] == ["item 0", "item 1", "item 2"]

    def test_add_many_rejects_whole_batch(self, api_client):
        token = register(api_client, "add_many_bad")
        body = [media_payload(name="fine"), media_payload(name="broken", score=11)]
        resp = api_client.post("/api/v1/media/addMedia?many=true", json=body, headers=auth_headers(token))
        error = _assert_error(resp, 400, "validation_error")
        assert error["detail"] == "score"
        listing = api_client.get("/api/v1/media", headers=auth_headers(token)).json()
        assert listing["data"] == []

    def test_add_many_requires_list(self, api_client):
        token = register(api_client, "add_many_obj")
        resp = api_client.post("/api/v1/media/addMedia?many=true", json=media_payload(), headers=auth_headers(token))
        _assert_error(resp, 400, "validation_error")

    def test_unknown_media_type(self, api_client):
        token = register(api_client, "add_bad_type")
        resp = api_client.post(
            "/api/v1/media/addMedia",
            json=media_payload(mediaType="podcast"),
            headers=auth_headers(token),
        )
        error = _assert_error(resp, 400, "validation_error")
        assert error["detail"] == "mediaType"

    def test_missing_field(self, api_client):
        token = register(api_client, "add_missing")
        body = media_payload()
        del body["poster"]
        resp = api_client.post("/api/v1/media/addMedia", json=body, headers=auth_headers(token))
        error = _assert_error(resp, 400, "validation_error")
        assert error["detail"] == "poster"

    def test_missing_body(self, api_client):
        token = register(api_client, "add_no_body")
        resp = api_client.post("/api/v1/media/addMedia", headers=auth_headers(token))
        _assert_error(resp, 400, "validation_error")

    def test_score_boundaries_accepted(self, api_client):
        token = register(api_client, "add_bounds")
        for score in (0, 10):
            resp = api_client.post(
                "/api/v1/media/addMedia",
                json=media_payload(score=score),
                headers=auth_headers(token),
            )
            assert resp.status_code == 201


class TestListMedia:
    def _seed(self, client, username: str) -> str:
        token = register(client, username)
        body = [
            media_payload(name="coco", language="Spanish", mediaType="movie", score=7.5, completedDate="2023-05-20"),
            media_payload(name="dune", language="English", mediaType="book", score=8, completedDate="2023-03-02"),
            media_payload(name="roma", language="spanish", mediaType="Movie", score=8, completedDate="2023-01-01"),
            media_payload(name="dark", language="english", mediaType="serie", score=10, completedDate="2022-12-31"),
        ]
        resp = client.post("/api/v1/media/addMedia?many=true", json=body, headers=auth_headers(token))
        assert resp.status_code == 201
        return token

    def test_list_without_filters(self, api_client):
        token = self._seed(api_client, "list_all")
        data = api_client.get("/api/v1/media", headers=auth_headers(token)).json()
        assert [d["name"] for d in data["data"]] == ["coco", "dune", "roma", "dark"]
        assert data["page"] == {
            "totalPages": 1,
            "currentPage": 1,
            "nextPage": 1,
            "prevPage": 1,
            "totalItems": 4,
        }

    def test_filter_by_language_any_case(self, api_client):
        token = self._seed(api_client, "list_lang")
        data = api_client.get("/api/v1/media?language=SPANISH", headers=auth_headers(token)).json()
        assert [d["name"] for d in data["data"]] == ["coco", "roma"]

    def test_combined_filters(self, api_client):
        token = self._seed(api_client, "list_combo")
        resp = api_client.get(
            "/api/v1/media",
            params={"mediaType": "movie", "scoreG": "8", "from": "2023-01-01", "to": "2023-12-31"},
            headers=auth_headers(token),
        )
        assert [d["name"] for d in resp.json()["data"]] == ["roma"]

    def test_unknown_language_matches_nothing(self, api_client):
        token = self._seed(api_client, "list_klingon")
        data = api_client.get("/api/v1/media?language=klingon", headers=auth_headers(token)).json()
        assert data["data"] == []
        assert data["page"]["totalItems"] == 0

    def test_single_date_bound_is_ignored(self, api_client):
        token = self._seed(api_client, "list_from_only")
        data = api_client.get("/api/v1/media?from=2023-04-01", headers=auth_headers(token)).json()
        assert len(data["data"]) == 4

    def test_invalid_score_filter(self, api_client):
        token = self._seed(api_client, "list_bad_score")
        resp = api_client.get("/api/v1/media?score=11", headers=auth_headers(token))
        error = _assert_error(resp, 400, "invalid_filter")
        assert error["detail"] == "score"

    def test_invalid_date_filter(self, api_client):
        token = self._seed(api_client, "list_bad_date")
        resp = api_client.get("/api/v1/media?from=soon&to=2023-01-01", headers=auth_headers(token))
        error = _assert_error(resp, 400, "invalid_filter")
        assert error["detail"] == "from"

    def test_invalid_page(self, api_client):
        token = register(api_client, "list_bad_page")
        resp = api_client.get("/api/v1/media?page=abc", headers=auth_headers(token))
        error = _assert_error(resp, 400, "validation_error")
        assert error["detail"] == "page"

    def test_pagination(self, api_client):
        token = register(api_client, "list_pages")
        body = [media_payload(name=f"n{n:02d}", completedDate=f"2023-01-{n + 1:02d}") for n in range(23)]
        assert (
            api_client.post("/api/v1/media/addMedia?many=true", json=body, headers=auth_headers(token)).status_code
            == 201
        )

        third = api_client.get("/api/v1/media?page=3", headers=auth_headers(token)).json()
        assert len(third["data"]) == 3
        assert third["page"]["totalPages"] == 3
        assert third["page"]["nextPage"] == 3
        assert third["page"]["prevPage"] == 2

        first = api_client.get("/api/v1/media?page=0", headers=auth_headers(token)).json()
        assert first["page"]["currentPage"] == 1
        assert len(first["data"]) == 10
        assert first["data"][0]["name"] == "n22"

        beyond = api_client.get("/api/v1/media?page=99", headers=auth_headers(token)).json()
        assert beyond["data"] == []
        assert beyond["page"]["totalPages"] == 3

    def test_lists_are_per_owner(self, api_client):
        self._seed(api_client, "list_owner_a")
        other = register(api_client, "list_owner_b")
        data = api_client.get("/api/v1/media", headers=auth_headers(other)).json()
        assert data["data"] == []


class TestMediaById:
    def _create(self, client, token: str) -> int:
        resp = client.post("/api/v1/media/addMedia", json=media_payload(), headers=auth_headers(token))
        assert resp.status_code == 201
        return resp.json()["id"]

    def test_get(self, api_client):
        token = register(api_client, "byid_get")
        media_id = self._create(api_client, token)
        resp = api_client.get(f"/api/v1/media/{media_id}", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json()["id"] == media_id

    def test_get_missing(self, api_client):
        token = register(api_client, "byid_missing")
        _assert_error(api_client.get("/api/v1/media/987654", headers=auth_headers(token)), 404, "not_found")

    def test_get_malformed_id(self, api_client):
        token = register(api_client, "byid_malformed")
        _assert_error(api_client.get("/api/v1/media/not-an-id", headers=auth_headers(token)), 404, "not_found")

    def test_get_other_users_item(self, api_client):
        owner = register(api_client, "byid_owner")
        media_id = self._create(api_client, owner)
        intruder = register(api_client, "byid_intruder")
        _assert_error(api_client.get(f"/api/v1/media/{media_id}", headers=auth_headers(intruder)), 404, "not_found")

    def test_delete(self, api_client):
        token = register(api_client, "byid_delete")
        media_id = self._create(api_client, token)
        resp = api_client.delete(f"/api/v1/media/{media_id}", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.json()["id"] == media_id
        assert resp.json()["name"] == "Spirited Away"
        _assert_error(api_client.get(f"/api/v1/media/{media_id}", headers=auth_headers(token)), 404, "not_found")
        _assert_error(api_client.delete(f"/api/v1/media/{media_id}", headers=auth_headers(token)), 404, "not_found")

    def test_delete_other_users_item(self, api_client):
        owner = register(api_client, "byid_del_owner")
        media_id = self._create(api_client, owner)
        intruder = register(api_client, "byid_del_intruder")
        _assert_error(api_client.delete(f"/api/v1/media/{media_id}", headers=auth_headers(intruder)), 404, "not_found")
        assert api_client.get(f"/api/v1/media/{media_id}", headers=auth_headers(owner)).status_code == 200

    def test_delete_malformed_id(self, api_client):
        token = register(api_client, "byid_del_malformed")
        _assert_error(api_client.delete("/api/v1/media/abc", headers=auth_headers(token)), 404, "not_found")

    def test_id_beyond_row_id_range(self, api_client):
        token = register(api_client, "byid_huge")
        huge = "99999999999999999999999"
        _assert_error(api_client.get(f"/api/v1/media/{huge}", headers=auth_headers(token)), 404, "not_found")
        _assert_error(api_client.delete(f"/api/v1/media/{huge}", headers=auth_headers(token)), 404, "not_found")

    def test_non_canonical_id_forms(self, api_client):
        token = register(api_client, "byid_canonical")
        media_id = self._create(api_client, token)
        for raw in (f" {media_id} ", f"+{media_id}", f"0_{media_id}", "0", "-1"):
            resp = api_client.get(f"/api/v1/media/{raw}", headers=auth_headers(token))
            _assert_error(resp, 404, "not_found")
        assert api_client.get(f"/api/v1/media/{media_id}", headers=auth_headers(token)).status_code == 200


def test_end_to_end_session_scenario(api_client):
    """Register -> login -> the first token is dead, the second adds and lists media."""
    token_a = register(api_client, "scenario_user", password="p4ss")
    token_b = _login(api_client, "scenario_user", "p4ss").json()["token"]

    _assert_error(api_client.get("/api/v1/media", headers=auth_headers(token_a)), 401, "unauthenticated")

    created = api_client.post(
        "/api/v1/media/addMedia",
        json=media_payload(name="Akira", mediaType="anime", language="english"),
        headers=auth_headers(token_b),
    )
    assert created.status_code == 201

    listing = api_client.get("/api/v1/media", headers=auth_headers(token_b)).json()
    assert [d["name"] for d in listing["data"]] == ["Akira"]
