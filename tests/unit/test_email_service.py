import asyncio
from unittest.mock import AsyncMock, patch

import aiosmtplib

from cardmock.services.email_service import EmailService, EmailServiceConfig


def _config(monkeypatch, **env):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("FROM_EMAIL", "noreply@cardmock.app")
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return EmailServiceConfig()


def test_config_validation(monkeypatch):
    config = _config(monkeypatch, SMTP_USE_TLS="true", SMTP_START_TLS="true")
    assert "SMTP_USE_TLS and SMTP_START_TLS are mutually exclusive" in config.validate()
    assert _config(monkeypatch, SMTP_USE_TLS="false").validate() == []


def test_build_message_is_multipart(monkeypatch):
    service = EmailService(_config(monkeypatch, REPLY_TO_EMAIL="support@cardmock.app"))
    message = service.build_message("to@bank.example", "Hello", "<p>Hi</p>", "Hi")

    assert message["To"] == "to@bank.example"
    assert message["Reply-To"] == "support@cardmock.app"
    assert message["Message-ID"].endswith("@cardmock.app>")
    parts = [part.get_content_type() for part in message.get_payload()]
    assert parts == ["text/plain", "text/html"]


def test_send_email_success(monkeypatch):
    service = EmailService(_config(monkeypatch))
    with patch("cardmock.services.email_service.aiosmtplib.send", new=AsyncMock()) as send:
        result = asyncio.run(service.send_email("to@bank.example", "Hello", "<p>Hi</p>"))

    assert result["success"] is True
    assert result["provider"] == "smtp"
    assert send.await_args.kwargs["hostname"] == "smtp.example.com"
    assert send.await_args.kwargs["start_tls"] is True


def test_send_email_failure_reported(monkeypatch):
    service = EmailService(_config(monkeypatch))
    failing = AsyncMock(side_effect=aiosmtplib.SMTPException("relay denied"))
    with patch("cardmock.services.email_service.aiosmtplib.send", new=failing):
        result = asyncio.run(service.send_email("to@bank.example", "Hello", "<p>Hi</p>"))

    assert result["success"] is False
    assert "relay denied" in result["error"]
