"""Pytest configuration for storefront API tests."""

import itertools

import pytest
from fastapi.testclient import TestClient

import crud
from auth import Principal, create_token, hash_password
from main import create_app
from settings import Settings

_emails = itertools.count(1)


@pytest.fixture
def settings(tmp_path):
    """SQLite file per test; minimum bcrypt cost so hashing stays fast."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        seed_products=False,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Context manager so the lifespan creates the tables
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db, settings):
    def _make(email=None, password="secret123", name="Test User"):
        return crud.create_user(
            db,
            email=email or f"user{next(_emails)}@example.com",
            password_hash=hash_password(password, settings.bcrypt_rounds) if password else None,
            name=name,
        )
    return _make


@pytest.fixture
def auth_headers(settings):
    def _headers(user):
        token = create_token(Principal.from_user(user), settings)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def user(make_user):
    return make_user(email="alice@example.com", name="Alice")


@pytest.fixture
def headers(user, auth_headers):
    return auth_headers(user)


@pytest.fixture
def other_user(make_user):
    return make_user(email="bob@example.com", name="Bob")


@pytest.fixture
def other_headers(other_user, auth_headers):
    return auth_headers(other_user)


@pytest.fixture
def make_product(db):
    def _make(**overrides):
        data = {
            "name": "Test Headphones",
            "description": "Wireless headphones",
            "price": 10.0,
            "image": "https://example.com/headphones.jpg",
            "category": "Electronics",
            "stock": 5,
        }
        data.update(overrides)
        return crud.create_product(db, data)
    return _make


def address_payload(**overrides):
    data = {
        "type": "HOME",
        "fullName": "Alice Example",
        "phoneNumber": "9876543210",
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postalCode": "560001",
        "isDefault": False,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_address(client):
    def _make(headers, **overrides):
        response = client.post("/api/addresses", json=address_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _make
