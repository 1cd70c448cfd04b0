"""
Tests for signup, login and session tokens.
"""

from datetime import datetime, timedelta, timezone

import jwt

import crud
from auth import Principal, authenticate, create_token, decode_token, hash_password, verify_password
from models import Role


def test_password_hash_is_salted_and_verifies():
    first = hash_password("secret123", rounds=4)
    second = hash_password("secret123", rounds=4)

    assert first != second
    assert verify_password("secret123", first)
    assert not verify_password("wrong", first)


def test_overlong_password_never_verifies():
    hashed = hash_password("a" * 72, rounds=4)
    assert not verify_password("a" * 73, hashed)


def test_authenticate(db, make_user):
    make_user(email="carol@example.com", password="secret123")
    make_user(email="sso@example.com", password=None)

    assert authenticate(db, "carol@example.com", "secret123").email == "carol@example.com"
    assert authenticate(db, "carol@example.com", "nope") is None
    assert authenticate(db, "missing@example.com", "secret123") is None
    # Externally authenticated account: no stored credential
    assert authenticate(db, "sso@example.com", "") is None


def test_signup_returns_token(client):
    response = client.post(
        "/api/auth/signup",
        json={"name": "Dana", "email": "dana@example.com", "password": "secret123"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["user"]["email"] == "dana@example.com"
    assert body["user"]["role"] == "USER"


def test_signup_duplicate_email(client, user):
    response = client.post(
        "/api/auth/signup",
        json={"name": "Alice again", "email": "alice@example.com", "password": "secret123"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_signup_racing_duplicate_email_is_a_conflict(client, user, monkeypatch):
    """The unique email index decides when the lookup misses a concurrent signup."""
    monkeypatch.setattr(crud, "get_user_by_email", lambda db, email: None)

    response = client.post(
        "/api/auth/signup",
        json={"name": "Alice again", "email": "alice@example.com", "password": "secret123"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_signup_rejects_short_password(client):
    response = client.post(
        "/api/auth/signup",
        json={"name": "Eve", "email": "eve@example.com", "password": "123"},
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("password:")


def test_login_sets_session_cookie(client, user):
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id
    assert "session_token" in response.cookies

    # The client keeps the cookie, so the session endpoint works without a header
    session = client.get("/api/auth/session")
    assert session.status_code == 200
    assert session.json()["email"] == "alice@example.com"


def test_login_wrong_password(client, user):
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_logout_clears_cookie(client, user):
    client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    client.post("/api/auth/logout")

    assert client.get("/api/auth/session").status_code == 401


def test_missing_token(client):
    response = client.get("/api/addresses")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_invalid_token(client):
    response = client.get("/api/orders", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}


def test_expired_token(client, settings, user):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    token = jwt.encode(
        {"sub": user.id, "email": user.email, "role": "USER", "exp": past},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )

    response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"error": "Token expired"}


def test_token_signed_with_other_secret(client, user):
    token = jwt.encode({"sub": user.id, "role": "USER"}, "another-secret", algorithm="HS256")

    response = client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_role_comes_from_token_not_database(client, db, user, headers):
    """A role change is not visible until the user signs in again."""
    user.role = Role.ADMIN
    db.commit()

    stale = client.get("/api/auth/session", headers=headers)
    assert stale.json()["role"] == "USER"

    fresh = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert fresh.json()["user"]["role"] == "ADMIN"


def test_token_round_trip(settings):
    principal = Principal(id="u-1", email="x@example.com", name="X", role=Role.ADMIN)

    decoded = decode_token(create_token(principal, settings), settings)

    assert decoded == principal
