"""Tests for the email backends."""
import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests

from booktracker.core.config.settings import Settings, get_settings
from booktracker.services.email import (
    PURPOSE_RESET,
    ApiEmailSender,
    ConsoleEmailSender,
    SmtpEmailSender,
    create_otp_email,
    get_email_sender,
)


@pytest.fixture
def settings():
    return Settings(
        EMAIL_HOST="smtp.test",
        EMAIL_PORT=2525,
        EMAIL_HOST_USER="mailer",
        EMAIL_HOST_PASSWORD="secret",
        EMAIL_USE_TLS=True,
        EMAIL_API_URL="https://mail.test/send",
        EMAIL_API_KEY="key-123",
        DEFAULT_FROM_EMAIL="Book Tracker <no-reply@booktracker.test>",
        EMAIL_TIMEOUT_SECONDS=3,
    )


@pytest.fixture
def backend_env(monkeypatch):
    def select(name):
        monkeypatch.setenv("EMAIL_BACKEND", name)
        get_settings.cache_clear()
        return get_email_sender()

    yield select
    monkeypatch.undo()
    get_settings.cache_clear()


@patch("booktracker.services.email.smtplib.SMTP")
def test_smtp_sender(mock_smtp, settings):
    server = mock_smtp.return_value.__enter__.return_value

    assert SmtpEmailSender(settings).send("ann@example.com", "Hi", "<p>code</p>")

    mock_smtp.assert_called_once_with("smtp.test", 2525, timeout=3)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("mailer", "secret")
    sender, recipient, message = server.sendmail.call_args[0]
    assert sender == "no-reply@booktracker.test"
    assert recipient == "ann@example.com"
    assert "Subject: Hi" in message


@patch("booktracker.services.email.smtplib.SMTP")
def test_smtp_sender_reports_failure(mock_smtp, settings):
    mock_smtp.return_value.__enter__.return_value.sendmail.side_effect = smtplib.SMTPException("down")
    assert SmtpEmailSender(settings).send("ann@example.com", "Hi", "<p></p>") is False


@patch("booktracker.services.email.smtplib.SMTP", side_effect=OSError("refused"))
def test_smtp_sender_connection_refused(mock_smtp, settings):
    assert SmtpEmailSender(settings).send("ann@example.com", "Hi", "<p></p>") is False


def test_api_sender(settings):
    session = MagicMock()
    assert ApiEmailSender(settings, session=session).send("ann@example.com", "Hi", "<p>code</p>")

    session.post.assert_called_once_with(
        "https://mail.test/send",
        json={
            "from": "Book Tracker <no-reply@booktracker.test>",
            "to": ["ann@example.com"],
            "subject": "Hi",
            "html": "<p>code</p>",
        },
        headers={"Authorization": "Bearer key-123"},
        timeout=3,
    )
    session.post.return_value.raise_for_status.assert_called_once()


def test_api_sender_reports_failure(settings):
    session = MagicMock()
    session.post.return_value.raise_for_status.side_effect = requests.HTTPError("401")
    assert ApiEmailSender(settings, session=session).send("ann@example.com", "Hi", "<p></p>") is False

    session.post.side_effect = requests.ConnectionError("dns")
    assert ApiEmailSender(settings, session=session).send("ann@example.com", "Hi", "<p></p>") is False


@patch("booktracker.services.email.logger")
def test_console_sender_logs_message(mock_logger):
    assert ConsoleEmailSender().send("ann@example.com", "Hi", "<div>482913</div>")
    message = mock_logger.info.call_args[0][0]
    assert "ann@example.com" in message
    assert "482913" in message


def test_backend_selection(backend_env):
    assert isinstance(backend_env("smtp"), SmtpEmailSender)
    assert isinstance(backend_env("API"), ApiEmailSender)
    assert isinstance(backend_env("console"), ConsoleEmailSender)


def test_otp_email_content():
    verify = create_otp_email("482913", 5)
    assert '<div class="code">482913</div>' in verify
    assert "Verify Your Email" in verify
    assert "valid for 5 minutes" in verify

    reset = create_otp_email("111222", 10, PURPOSE_RESET)
    assert "Password Reset Verification" in reset
    assert "valid for 10 minutes" in reset
