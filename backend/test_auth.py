from datetime import timedelta

from sqlmodel import select

import config
from auth import hash_password, verify_password
from models import AuthSession, utcnow


def test_password_hash_round_trip():
    hashed = hash_password("password123")
    assert hashed != "password123"
    assert verify_password("password123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("password123", "garbage")


def test_login_session_logout(client, users):
    response = client.post("/auth/login", json={"email": "Joe@Example.com", "password": "password123"})
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["username"] == "joe"
    headers = {"Authorization": f"Bearer {body['token']}"}

    session = client.get("/auth/session", headers=headers)
    assert session.status_code == 200
    assert session.json()["user"]["display_name"] == "Joe"

    assert client.post("/auth/logout", headers=headers).status_code == 204
    assert client.get("/auth/session", headers=headers).status_code == 401


def test_bad_credentials(client, users):
    response = client.post("/auth/login", json={"email": "joe@example.com", "password": "nope"})
    assert response.status_code == 401
    response = client.post("/auth/login", json={"email": "nobody@example.com", "password": "password123"})
    assert response.status_code == 401


def test_session_requires_bearer_token(client, users):
    assert client.get("/auth/session").status_code == 401
    assert client.get("/auth/session", headers={"Authorization": "Bearer unknown"}).status_code == 401


def test_expired_session_is_rejected(client, session, users):
    response = client.post("/auth/login", json={"email": "joe@example.com", "password": "password123"})
    token = response.json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    stored = session.get(AuthSession, token)
    stored.created_at = utcnow() - config.SESSION_MAX_AGE - timedelta(minutes=1)
    session.add(stored)
    session.commit()

    assert client.get("/auth/session", headers=headers).status_code == 401
    session.expire_all()
    assert session.exec(select(AuthSession).where(AuthSession.token == token)).first() is None
