"""Tests for password hashing, session tokens and token transports."""
from datetime import timedelta

import jwt
import pytest
from fastapi import Response
from fastapi.security import HTTPAuthorizationCredentials

from booktracker.core.config.settings import get_settings
from booktracker.core.exceptions import InvalidToken
from booktracker.core.security.auth import (
    create_access_token,
    create_hashed_password,
    decode_access_token,
    generate_token,
    verify_password,
)
from booktracker.core.security.transport import BearerTransport, CookieTransport


def test_password_hashing():
    hashed = create_hashed_password("Passw0rd!")
    assert hashed != "Passw0rd!"
    assert verify_password("Passw0rd!", hashed)
    assert not verify_password("passw0rd!", hashed)
    assert not verify_password("Passw0rd!", None)


def test_access_token_round_trip():
    token = create_access_token(42)
    assert decode_access_token(token) == 42

    payload = jwt.decode(token, get_settings().SECRET_KEY, algorithms=[get_settings().ALGORITHM])
    assert payload["sub"] == "42"
    assert payload["exp"] - payload["iat"] == get_settings().ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_expired_token():
    token = generate_token({"sub": "1"}, timedelta(seconds=-10))
    with pytest.raises(InvalidToken, match="expired"):
        decode_access_token(token)


def test_token_signed_with_other_key():
    token = jwt.encode({"sub": "1"}, "another-secret-key-of-sufficient-length", algorithm="HS256")
    with pytest.raises(InvalidToken):
        decode_access_token(token)


def test_tampered_token():
    token = create_access_token(1)
    with pytest.raises(InvalidToken):
        decode_access_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))


@pytest.mark.parametrize("payload", [{}, {"sub": "abc"}])
def test_token_without_numeric_subject(payload):
    token = generate_token(payload, timedelta(minutes=5))
    with pytest.raises(InvalidToken, match="payload"):
        decode_access_token(token)


def test_cookie_transport():
    transport = CookieTransport(get_settings())
    response = Response()
    transport.attach(response, "abc")

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("token=abc")
    assert "HttpOnly" in cookie
    assert "Path=/" in cookie
    assert f"Max-Age={get_settings().ACCESS_TOKEN_EXPIRE_MINUTES * 60}" in cookie
    assert transport.body("abc") == {}

    bearer = HTTPAuthorizationCredentials(scheme="Bearer", credentials="from-header")
    assert transport.extract("abc", bearer) == "abc"
    assert transport.extract(None, bearer) is None


def test_bearer_transport():
    transport = BearerTransport()
    bearer = HTTPAuthorizationCredentials(scheme="Bearer", credentials="abc")
    assert transport.extract(None, bearer) == "abc"
    assert transport.extract("from-cookie", None) is None

    assert transport.body("abc") == {"token": "abc", "token_type": "bearer"}
    assert transport.redirect_target("http://app", "abc") == "http://app#token=abc"


def test_openapi_declares_session_schemes(client):
    schema = client.get("/api/openapi.json").json()

    schemes = schema["components"]["securitySchemes"]
    assert schemes["bearerAuth"] == {"type": "http", "scheme": "bearer"}
    assert schemes["cookieAuth"] == {"type": "apiKey", "in": "cookie", "name": "token"}

    protected = schema["paths"]["/api/books/mine"]["get"]["security"]
    assert {"bearerAuth": []} in protected
    assert {"cookieAuth": []} in protected
    assert "security" not in schema["paths"]["/api/books"]["get"]


@pytest.mark.parametrize("header", ["Basic abc", "Bearer ", "abc"])
def test_bearer_mode_rejects_malformed_header(client, monkeypatch, header):
    monkeypatch.setattr(get_settings(), "TOKEN_TRANSPORT", "bearer")
    response = client.get("/api/auth/me", headers={"Authorization": header})
    assert response.status_code == 401
    assert response.json()["code"] == "Unauthenticated"


def test_bearer_api_flow(client, outbox, monkeypatch):
    """With bearer transport the token travels in the body and the header."""
    monkeypatch.setattr(get_settings(), "TOKEN_TRANSPORT", "bearer")

    user_id = client.post(
        "/api/auth/register",
        json={"name": "Ann", "email": "ann@example.com", "password": "Passw0rd!"},
    ).json()["userId"]
    response = client.post("/api/auth/verify-otp", json={"userId": user_id, "otp": outbox.last_code()})
    assert response.status_code == 200

    data = response.json()
    assert data["token_type"] == "bearer"
    assert "token" not in client.cookies

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user_id
    assert client.get("/api/auth/me").status_code == 401
