"""Tests for registration, login and token flows."""

from collections import deque
from datetime import datetime, timedelta

from sqlalchemy.orm import Query

from blogpress.auth import create_purpose_token, hash_password, verify_password
from blogpress.models import User
from blogpress.routers import auth as auth_router
from blogpress.routers.auth import EMAIL_VERIFICATION_TOKEN, PASSWORD_RESET_TOKEN
from blogpress.schemas import ForgotPasswordRequest


def test_register_user(client, db):
    response = client.post("/auth/register", json={
        "name": "New Reader",
        "email": "new@example.com",
        "password": "password123",
    })

    assert response.status_code == 201
    assert "access_token" in response.json()

    user = db.query(User).filter(User.email == "new@example.com").one()
    assert user.name == "New Reader"
    assert user.is_admin is False
    assert user.email_verified_at is None


def test_register_duplicate_email(client, reader):
    response = client.post("/auth/register", json={
        "name": "Again", "email": "reader@example.com", "password": "password123",
    })
    assert response.status_code == 400


def test_register_validates_input(client):
    assert client.post("/auth/register", json={
        "name": "", "email": "x@example.com", "password": "password123",
    }).status_code == 422
    assert client.post("/auth/register", json={
        "name": "Short", "email": "x@example.com", "password": "short",
    }).status_code == 422
    assert client.post("/auth/register", json={
        "name": "Bad", "email": "not-an-email", "password": "password123",
    }).status_code == 422


def test_login_and_me(client, reader):
    response = client.post("/auth/login", json={"email": "reader@example.com", "password": "password123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "reader@example.com"
    assert me.json()["is_admin"] is False


def test_login_invalid_credentials(client, reader):
    assert client.post("/auth/login", json={
        "email": "reader@example.com", "password": "wrong-password",
    }).status_code == 401
    assert client.post("/auth/login", json={
        "email": "nobody@example.com", "password": "password123",
    }).status_code == 401


def test_password_truncated_to_bcrypt_limit():
    hashed = hash_password("a" * 80)
    assert verify_password("a" * 72, hashed)


def test_reset_password(client, db, reader):
    token = create_purpose_token(reader.email, PASSWORD_RESET_TOKEN, timedelta(minutes=30))

    response = client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})

    assert response.status_code == 200
    assert client.post("/auth/login", json={
        "email": "reader@example.com", "password": "brand-new-pass",
    }).status_code == 200


def test_reset_password_rejects_other_token_types(client, reader):
    token = create_purpose_token(reader.email, EMAIL_VERIFICATION_TOKEN, timedelta(minutes=30))
    response = client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert response.status_code == 400


def test_expired_reset_token(client, reader):
    token = create_purpose_token(reader.email, PASSWORD_RESET_TOKEN, timedelta(minutes=-1))
    response = client.post("/auth/reset-password", json={"token": token, "new_password": "brand-new-pass"})
    assert response.status_code == 400


def test_purpose_token_cannot_authenticate(client, reader):
    token = create_purpose_token(reader.email, PASSWORD_RESET_TOKEN, timedelta(minutes=30))
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_verify_email(client, db, reader):
    token = create_purpose_token(reader.email, EMAIL_VERIFICATION_TOKEN, timedelta(hours=24))

    response = client.post("/auth/verify-email", json={"token": token})

    assert response.status_code == 200
    assert response.json()["email_verified_at"] is not None
    db.expire_all()
    assert db.query(User).filter(User.email == "reader@example.com").one().email_verified_at is not None


def test_forgot_password_unknown_email(client):
    response = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    assert response.status_code == 404


def test_email_is_case_insensitive(client, db):
    response = client.post("/auth/register", json={
        "name": "Mixed", "email": "Mixed@Example.COM", "password": "password123",
    })
    assert response.status_code == 201

    for email in ("Mixed@Example.COM", "  mixed@example.com "):
        assert client.post("/auth/login", json={
            "email": email, "password": "password123",
        }).status_code == 200

    assert client.post("/auth/register", json={
        "name": "Again", "email": "mixed@example.com", "password": "password123",
    }).status_code == 400

    assert [user.email for user in db.query(User).all()] == ["mixed@example.com"]


def test_forgot_password_email_is_normalized():
    assert ForgotPasswordRequest(email="READER@Example.com").email == "reader@example.com"


def test_register_race_on_unique_email_is_rejected(client, db, reader, monkeypatch):
    # Another request inserted the same email between the lookup and the commit
    monkeypatch.setattr(Query, "first", lambda self: None)

    response = client.post("/auth/register", json={
        "name": "Twin", "email": "reader@example.com", "password": "password123",
    })

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"
    assert db.query(User).count() == 1


def test_rate_limit_drops_expired_entries():
    stale = datetime.now() - auth_router.EMAIL_RATE_WINDOW - timedelta(minutes=1)
    auth_router.email_requests["old@example.com"] = deque([stale], maxlen=auth_router.EMAIL_RATE_LIMIT)

    auth_router._check_rate_limit("Old@example.com")

    assert "old@example.com" not in auth_router.email_requests


def test_rate_limit_blocks_after_limit(client, reader):
    now = datetime.now()
    auth_router.email_requests["reader@example.com"] = deque(
        [now] * auth_router.EMAIL_RATE_LIMIT, maxlen=auth_router.EMAIL_RATE_LIMIT
    )

    response = client.post("/auth/forgot-password", json={"email": "Reader@example.com"})
    assert response.status_code == 429
