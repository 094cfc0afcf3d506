import os
import re
import tempfile

# Must be in place before any booktracker module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["TOKEN_TRANSPORT"] = "cookie"
os.environ["COOKIE_SECURE"] = "false"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="booktracker-logs-")

import pytest
from fastapi.testclient import TestClient

from booktracker.core.exceptions import UpstreamFailure
from booktracker.db.base import Base
from booktracker.db.init_db import init_db
from booktracker.db.session import SessionLocal, engine
from booktracker.main import app
from booktracker.services.email import EmailSender, get_email_sender
from booktracker.services.oauth import GoogleProfile, get_oauth_client

PASSWORD = "Passw0rd!"
CODE_PATTERN = re.compile(r'<div class="code">(\d+)</div>')


class RecordingEmailSender(EmailSender):
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, html_content):
        if self.fail:
            return False
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return True

    def last_code(self, to_email=None):
        for message in reversed(self.sent):
            if to_email is None or message["to"] == to_email:
                return CODE_PATTERN.search(message["html"]).group(1)
        raise AssertionError(f"no email sent to {to_email}")


class FakeGoogleClient:
    def __init__(self):
        self.profile = GoogleProfile(
            email="reader@gmail.com",
            name="Google Reader",
            picture="https://example.com/pic.png",
            provider_id="google-123",
        )
        self.fail_exchange = False
        self.exchanged = []

    def authorization_url(self, state):
        return f"https://accounts.google.com/o/oauth2/v2/auth?state={state}"

    def exchange_code(self, code):
        if self.fail_exchange:
            raise UpstreamFailure("Google token exchange failed: boom")
        self.exchanged.append(code)
        return "access-token"

    def fetch_profile(self, access_token):
        return self.profile


@pytest.fixture(autouse=True)
def database():
    Base.metadata.drop_all(bind=engine)
    init_db(engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def outbox():
    return RecordingEmailSender()


@pytest.fixture
def google():
    return FakeGoogleClient()


@pytest.fixture
def client(outbox, google):
    app.dependency_overrides[get_email_sender] = lambda: outbox
    app.dependency_overrides[get_oauth_client] = lambda: google
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def other_client(client):
    """A second browser session against the same app and overrides."""
    with TestClient(app) as test_client:
        yield test_client


def wrong_code(code):
    return "000000" if code != "000000" else "111111"


def register(client, name="Ann", email="ann@example.com", password=PASSWORD):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def register_and_verify(client, outbox, name="Ann", email="ann@example.com", password=PASSWORD):
    response = register(client, name=name, email=email, password=password)
    assert response.status_code == 200, response.text
    user_id = response.json()["userId"]
    verified = client.post(
        "/api/auth/verify-otp",
        json={"userId": user_id, "otp": outbox.last_code(email)},
    )
    assert verified.status_code == 200, verified.text
    return user_id


@pytest.fixture
def auth_client(client, outbox):
    """A client already signed in as ann@example.com."""
    register_and_verify(client, outbox)
    return client
