"""Tests for the Google OAuth client."""
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from booktracker.core.config.settings import Settings
from booktracker.core.exceptions import UpstreamFailure
from booktracker.services.oauth import GOOGLE_TOKEN_URL, GoogleOAuthClient


@pytest.fixture
def settings():
    return Settings(
        GOOGLE_CLIENT_ID="client-id",
        GOOGLE_CLIENT_SECRET="client-secret",
        GOOGLE_REDIRECT_URI="http://api.test/api/auth/google/callback",
        OAUTH_TIMEOUT_SECONDS=4,
    )


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


def test_authorization_url(settings):
    url = GoogleOAuthClient(settings, session=MagicMock()).authorization_url("state-1")
    parsed = urlparse(url)
    query = parse_qs(parsed.query)

    assert parsed.netloc == "accounts.google.com"
    assert query["client_id"] == ["client-id"]
    assert query["redirect_uri"] == ["http://api.test/api/auth/google/callback"]
    assert query["response_type"] == ["code"]
    assert query["scope"] == ["openid email profile"]
    assert query["state"] == ["state-1"]


def test_unconfigured_client(settings):
    settings.GOOGLE_CLIENT_SECRET = None
    client = GoogleOAuthClient(settings, session=MagicMock())
    assert not client.configured
    with pytest.raises(UpstreamFailure, match="not configured"):
        client.authorization_url("state")
    with pytest.raises(UpstreamFailure, match="not configured"):
        client.exchange_code("code")


def test_exchange_code(settings):
    session = MagicMock()
    session.post.return_value = json_response({"access_token": "at-1", "token_type": "Bearer"})

    assert GoogleOAuthClient(settings, session=session).exchange_code("auth-code") == "at-1"

    args, kwargs = session.post.call_args
    assert args == (GOOGLE_TOKEN_URL,)
    assert kwargs["data"]["code"] == "auth-code"
    assert kwargs["data"]["grant_type"] == "authorization_code"
    assert kwargs["timeout"] == 4


def test_exchange_code_http_error(settings):
    session = MagicMock()
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError("400 invalid_grant")
    with pytest.raises(UpstreamFailure, match="invalid_grant"):
        GoogleOAuthClient(settings, session=session).exchange_code("bad")


def test_exchange_code_without_token(settings):
    session = MagicMock()
    session.post.return_value = json_response({"error": "invalid_grant"})
    with pytest.raises(UpstreamFailure, match="access token"):
        GoogleOAuthClient(settings, session=session).exchange_code("bad")


def test_fetch_profile(settings):
    session = MagicMock()
    session.get.return_value = json_response(
        {"sub": 1234, "email": "reader@gmail.com", "name": "Reader", "picture": "https://p.test/a.png"}
    )

    profile = GoogleOAuthClient(settings, session=session).fetch_profile("at-1")
    assert profile.email == "reader@gmail.com"
    assert profile.name == "Reader"
    assert profile.picture == "https://p.test/a.png"
    assert profile.provider_id == "1234"
    assert session.get.call_args.kwargs["headers"] == {"Authorization": "Bearer at-1"}


def test_fetch_profile_name_falls_back_to_email(settings):
    session = MagicMock()
    session.get.return_value = json_response({"sub": "1", "email": "reader@gmail.com"})
    profile = GoogleOAuthClient(settings, session=session).fetch_profile("at-1")
    assert profile.name == "reader"
    assert profile.picture is None


def test_fetch_profile_without_email(settings):
    session = MagicMock()
    session.get.return_value = json_response({"sub": "1"})
    with pytest.raises(UpstreamFailure):
        GoogleOAuthClient(settings, session=session).fetch_profile("at-1")


def test_fetch_profile_network_error(settings):
    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")
    with pytest.raises(UpstreamFailure, match="slow"):
        GoogleOAuthClient(settings, session=session).fetch_profile("at-1")
