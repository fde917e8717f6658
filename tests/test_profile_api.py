"""Tests for member self-service: profile, name, password, e-mail, deletion."""

from __future__ import annotations

from membership.models import Role
from membership.services.users import create_user

PASSWORD = "member-password"


def _login(client, email="member@x.com", password=PASSWORD):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text


def _delete(client, password: str):
    return client.request("DELETE", "/profile", json={"password": password})


def test_profile_requires_session(client):
    assert client.get("/profile").status_code == 401
    assert client.patch("/profile/name", json={"name": "X"}).status_code == 401


def test_read_profile(client, make_user):
    make_user("member@x.com", password=PASSWORD, name="Member")
    _login(client)

    user = client.get("/profile").json()["user"]

    assert user["email"] == "member@x.com"
    assert user["name"] == "Member"
    assert user["hasPassword"] is True
    assert user["authProviders"] == []
    assert "password_hash" not in user


def test_update_name(client, make_user):
    make_user("member@x.com", password=PASSWORD)
    _login(client)

    assert client.patch("/profile/name", json={"name": " New Name "}).status_code == 200

    assert client.get("/profile").json()["user"]["name"] == "New Name"
    assert client.get("/auth/session").json()["user"]["name"] == "New Name"
    assert client.patch("/profile/name", json={"name": ""}).status_code == 422


def test_change_password(client, make_user):
    make_user("member@x.com", password=PASSWORD)
    _login(client)

    wrong = client.post(
        "/profile/password",
        json={"currentPassword": "nope", "newPassword": "fresh-password", "confirmPassword": "fresh-password"},
    )
    assert (wrong.status_code, wrong.json()["detail"]) == (401, "InvalidCurrentPassword")

    mismatch = client.post(
        "/profile/password",
        json={"currentPassword": PASSWORD, "newPassword": "fresh-password", "confirmPassword": "other"},
    )
    assert mismatch.status_code == 422

    ok = client.post(
        "/profile/password",
        json={"currentPassword": PASSWORD, "newPassword": "fresh-password", "confirmPassword": "fresh-password"},
    )
    assert ok.status_code == 200

    client.post("/auth/logout")
    stale = client.post("/auth/login", json={"email": "member@x.com", "password": PASSWORD})
    assert stale.status_code == 401
    _login(client, password="fresh-password")


def test_oauth_only_member_has_no_password_to_change(client, oauth_round_trip):
    oauth_round_trip(intent="register", email="social@x.com")

    profile = client.get("/profile").json()["user"]
    response = client.post(
        "/profile/password",
        json={"currentPassword": "x", "newPassword": "fresh-password", "confirmPassword": "fresh-password"},
    )

    assert profile["hasPassword"] is False
    assert profile["authProviders"] == ["google"]
    assert (response.status_code, response.json()["detail"]) == (409, "NoPassword")


def test_change_email_confirms_through_new_inbox(client, make_user, sent_mail):
    make_user("member@x.com", password=PASSWORD)
    _login(client)

    response = client.post(
        "/profile/email", json={"newEmail": "Moved@X.com", "password": PASSWORD, "locale": "es"}
    )
    assert response.status_code == 200
    assert response.json()["message"] == "VerificationSent"
    address, token, locale = sent_mail[-1]
    assert (address, locale) == ("Moved@X.com", "es")
    assert client.get("/profile").json()["user"]["email"] == "member@x.com"

    confirmed = client.get(
        "/api/auth/verify-email", params={"token": token}, follow_redirects=False
    )

    assert confirmed.headers["location"] == "/en/login?verified=true"
    assert client.get("/profile").json()["user"]["email"] == "moved@x.com"
    client.post("/auth/logout")
    _login(client, email="moved@x.com")


def test_change_email_rejections(client, make_user):
    make_user("member@x.com", password=PASSWORD)
    make_user("taken@x.com")
    _login(client)

    taken = client.post("/profile/email", json={"newEmail": "taken@x.com", "password": PASSWORD})
    wrong = client.post("/profile/email", json={"newEmail": "free@x.com", "password": "nope"})

    assert (taken.status_code, taken.json()["detail"]) == (409, "EmailInUse")
    assert (wrong.status_code, wrong.json()["detail"]) == (401, "InvalidPassword")


def test_email_taken_before_confirmation_is_refused(client, session, make_user, sent_mail):
    make_user("member@x.com", password=PASSWORD)
    _login(client)
    client.post("/profile/email", json={"newEmail": "moved@x.com", "password": PASSWORD})
    token = sent_mail[-1][1]
    create_user(session, email="moved@x.com")

    response = client.get("/api/auth/verify-email", params={"token": token}, follow_redirects=False)

    assert response.headers["location"] == "/en/login?error=EmailInUse"
    assert client.get("/profile").json()["user"]["email"] == "member@x.com"


def test_delete_account(client, make_user, counts):
    make_user("member@x.com", password=PASSWORD)
    _login(client)

    wrong = _delete(client, "nope")
    assert (wrong.status_code, wrong.json()["detail"]) == (401, "InvalidPassword")

    assert _delete(client, PASSWORD).status_code == 200
    assert counts.users() == 0
    assert client.get("/auth/session").json() == {"user": None}


def test_oauth_only_member_deletes_without_password(client, oauth_round_trip, counts):
    oauth_round_trip(intent="register", email="social@x.com")

    assert _delete(client, "").status_code == 200
    assert counts.users() == 0
    assert counts.accounts() == 0


def test_last_admin_cannot_close_their_account(client, make_user, counts):
    make_user("admin@x.com", password=PASSWORD, role=Role.ADMIN)
    _login(client, email="admin@x.com")

    response = _delete(client, PASSWORD)

    assert (response.status_code, response.json()["detail"]) == (409, "CannotDeleteLastAdmin")
    assert counts.users() == 1
