"""
tests/test_user_routes.py -- Integration tests for the account endpoints.
"""

from __future__ import annotations

from auth.models import Account


class TestRegister:
    def test_register_returns_account(self, api) -> None:
        resp = api.client.post("/users/register", json={"username": "kurama", "password": "youko"})
        assert resp.status_code == 201
        assert resp.json() == {"id": 1, "username": "kurama", "password": "youko"}

    def test_duplicate_username_conflicts(self, api) -> None:
        api.client.post("/users/register", json={"username": "kurama", "password": "youko"})
        resp = api.client.post("/users/register", json={"username": "kurama", "password": "other"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"
        assert len(api.accounts.list_accounts()) == 1


class TestAccountReads:
    def test_list_users(self, api) -> None:
        api.accounts.create_account(Account(username="kurama", password="youko"))
        api.accounts.create_account(Account(username="hiei", password="jagan"))
        resp = api.client.get("/users")
        assert resp.status_code == 302
        assert [u["username"] for u in resp.json()] == ["kurama", "hiei"]

    def test_list_users_empty(self, api) -> None:
        resp = api.client.get("/users")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "users_empty"

    def test_get_user(self, api) -> None:
        account = api.accounts.create_account(Account(username="hiei", password="jagan"))
        resp = api.client.get(f"/users/{account.id}")
        assert resp.status_code == 302
        assert resp.json()["username"] == "hiei"

    def test_get_unknown_user(self, api) -> None:
        resp = api.client.get("/users/99")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "user_not_found"


class TestAccountWrites:
    def test_update_user(self, logged_in) -> None:
        resp = logged_in.client.put(
            "/users",
            json={"id": logged_in.account_id, "username": "urameshi", "password": "toguro"},
            headers=logged_in.auth(),
        )
        assert resp.status_code == 200
        assert resp.text == "Updated 1 users."
        assert logged_in.accounts.get_by_id(logged_in.account_id).username == "urameshi"

    def test_update_unknown_user_is_not_modified(self, logged_in) -> None:
        resp = logged_in.client.put(
            "/users",
            json={"id": 99, "username": "urameshi", "password": "toguro"},
            headers=logged_in.auth(),
        )
        assert resp.status_code == 304

    def test_update_validates_body(self, logged_in) -> None:
        resp = logged_in.client.put(
            "/users",
            json={"id": logged_in.account_id, "username": "urameshi", "password": "abc"},
            headers=logged_in.auth(),
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "password_length"

    def test_update_requires_login(self, api) -> None:
        resp = api.client.put("/users", json={"id": 1, "username": "urameshi", "password": "toguro"})
        assert resp.status_code == 401

    def test_delete_user(self, logged_in) -> None:
        other = logged_in.accounts.create_account(Account(username="hiei", password="jagan"))
        resp = logged_in.client.delete(f"/users/{other.id}", headers=logged_in.auth())
        assert resp.status_code == 200
        assert logged_in.accounts.get_by_id(other.id) is None

    def test_delete_unknown_user_is_not_modified(self, logged_in) -> None:
        resp = logged_in.client.delete("/users/99", headers=logged_in.auth())
        assert resp.status_code == 304
