"""Tests for first-run setup and admin user management."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from membership.models import Role
from membership.services.errors import AuthFlowError, LastAdminError
from membership.services.users import change_role, delete_user

ADMIN = {
    "name": "Admin",
    "email": "admin@x.com",
    "password": "admin-password",
    "confirmPassword": "admin-password",
}


def _login(client, email, password):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["user"]


@pytest.fixture
def admin_client(client):
    assert client.post("/setup", json=ADMIN).status_code == 201
    _login(client, ADMIN["email"], ADMIN["password"])
    return client


def test_setup_only_runs_once(client):
    assert client.get("/setup").json() == {"needsSetup": True}
    created = client.post("/setup", json=ADMIN)
    assert created.status_code == 201
    assert created.json()["user"]["role"] == "ADMIN"
    assert client.get("/setup").json() == {"needsSetup": False}

    again = client.post("/setup", json={**ADMIN, "email": "other@x.com"})
    assert again.status_code == 409
    assert again.json()["detail"] == "AdminAlreadyExists"


def test_setup_rejects_mismatched_passwords(client):
    response = client.post("/setup", json={**ADMIN, "confirmPassword": "different-pass"})

    assert response.status_code == 422


def test_admin_routes_require_admin_session(client, make_user):
    assert client.get("/admin/users").status_code == 401

    make_user("member@x.com", password="member-password")
    _login(client, "member@x.com", "member-password")

    assert client.get("/admin/users").status_code == 403


def test_admin_lists_users(admin_client, make_user):
    make_user("member@x.com")

    users = admin_client.get("/admin/users").json()["users"]

    assert {user["email"] for user in users} == {"admin@x.com", "member@x.com"}
    assert all("password_hash" not in user for user in users)


def test_admin_cannot_modify_or_delete_self(admin_client):
    me = admin_client.get("/auth/session").json()["user"]["id"]

    role = admin_client.patch(f"/admin/users/{me}/role", json={"role": "USER"})
    delete = admin_client.delete(f"/admin/users/{me}")

    assert (role.status_code, role.json()["detail"]) == (409, "CannotModifySelf")
    assert (delete.status_code, delete.json()["detail"]) == (409, "CannotDeleteSelf")


def test_unknown_target_is_not_found(admin_client):
    response = admin_client.delete("/admin/users/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404


def test_role_change_applies_on_next_sign_in(admin_client, make_user):
    member = make_user("member@x.com", password="member-password")
    member_client = TestClient(admin_client.app)
    _login(member_client, "member@x.com", "member-password")

    promoted = admin_client.patch(f"/admin/users/{member.id}/role", json={"role": "ADMIN"})
    assert promoted.status_code == 200

    assert member_client.get("/auth/session").json()["user"]["role"] == "USER"
    assert member_client.get("/admin/users").status_code == 403

    assert _login(member_client, "member@x.com", "member-password")["role"] == "ADMIN"
    assert member_client.get("/admin/users").status_code == 200


def test_demoted_admin_loses_access_before_session_refresh(admin_client, make_user):
    other = make_user("second@x.com", password="second-password", role=Role.ADMIN)
    other_client = TestClient(admin_client.app)
    _login(other_client, "second@x.com", "second-password")

    assert admin_client.patch(f"/admin/users/{other.id}/role", json={"role": "USER"}).status_code == 200

    assert other_client.get("/auth/session").json()["user"]["role"] == "ADMIN"
    assert other_client.get("/admin/users").status_code == 403


def test_delete_user_removes_member(admin_client, make_user, counts):
    member = make_user("member@x.com")

    assert admin_client.delete(f"/admin/users/{member.id}").status_code == 200
    assert counts.users() == 1


def test_last_admin_is_protected(session, make_user):
    admin = make_user("only-admin@x.com", role=Role.ADMIN)
    actor = make_user("actor@x.com")

    with pytest.raises(LastAdminError) as demote:
        change_role(session, actor=actor, target_id=str(admin.id), role=Role.USER)
    with pytest.raises(AuthFlowError) as remove:
        delete_user(session, actor=actor, target_id=str(admin.id))

    assert str(demote.value) == "CannotRemoveLastAdmin"
    assert str(remove.value) == "CannotDeleteLastAdmin"
