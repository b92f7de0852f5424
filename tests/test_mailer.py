"""Unit tests for app.services.mailer: Mailgun request shape, failure handling, unconfigured fallback."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from pydantic import SecretStr

from app.services.mailer import (
    RESET_SUBJECT,
    is_mail_configured,
    build_reset_link,
    send_password_reset_email,
)

TOKEN = "ab" * 32


def _settings(api_key: str | None = "key-123", domain: str | None = "mg.example.com") -> MagicMock:
    settings = MagicMock()
    settings.MAILGUN_API_KEY = SecretStr(api_key) if api_key is not None else None
    settings.MAILGUN_DOMAIN = domain
    settings.MAILGUN_FROM_EMAIL = "MSKTF <no-reply@mg.example.com>"
    settings.MAILGUN_BASE_URL = "https://api.eu.mailgun.net"
    settings.MAIL_REQUEST_TIMEOUT_SEC = 10.0
    settings.FRONTEND_URL = "https://news.example.com"
    settings.PASSWORD_RESET_EXPIRE_MINUTES = 60
    return settings


def _mock_client(mock_client_class: MagicMock, post: AsyncMock) -> None:
    mock_instance = MagicMock()
    mock_instance.post = post
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)


def _response(status_code: int, body: dict | None = None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body or {}
    resp.text = text
    return resp


class TestIsMailConfigured(unittest.TestCase):
    def test_missing_key(self) -> None:
        self.assertFalse(is_mail_configured(_settings(api_key=None)))

    def test_blank_key(self) -> None:
        self.assertFalse(is_mail_configured(_settings(api_key="  ")))

    def test_missing_domain(self) -> None:
        self.assertFalse(is_mail_configured(_settings(domain=None)))

    def test_configured(self) -> None:
        self.assertTrue(is_mail_configured(_settings()))


class TestResetLink(unittest.TestCase):
    def test_points_at_front_end_page(self) -> None:
        self.assertEqual(
            build_reset_link(_settings(), TOKEN),
            f"https://news.example.com/reset-password.html?token={TOKEN}",
        )


class TestSendPasswordResetEmail(unittest.TestCase):
    @patch("app.services.mailer.httpx.AsyncClient")
    def test_unconfigured_logs_link_instead(self, mock_client_class: MagicMock) -> None:
        with self.assertLogs("app.services.mailer", level="WARNING") as logs:
            result = asyncio.run(
                send_password_reset_email("user@example.com", TOKEN, _settings(api_key=None))
            )
        self.assertIsNone(result)
        mock_client_class.assert_not_called()
        self.assertIn(TOKEN, logs.output[0])

    @patch("app.services.mailer.httpx.AsyncClient")
    def test_posts_form_with_basic_auth(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(return_value=_response(200, {"id": "<msg@mg>", "message": "Queued"}))
        _mock_client(mock_client_class, post)

        result = asyncio.run(send_password_reset_email("user@example.com", TOKEN, _settings()))

        self.assertEqual(result, {"id": "<msg@mg>", "message": "Queued"})
        self.assertEqual(mock_client_class.call_args[1]["auth"], ("api", "key-123"))
        post.assert_awaited_once()
        url = post.call_args[0][0]
        self.assertEqual(url, "https://api.eu.mailgun.net/v3/mg.example.com/messages")
        data = post.call_args[1]["data"]
        self.assertEqual(data["to"], "user@example.com")
        self.assertEqual(data["subject"], RESET_SUBJECT)
        self.assertIn(f"reset-password.html?token={TOKEN}", data["text"])
        self.assertIn("60 minutes", data["html"])
        self.assertEqual(post.call_args[1]["timeout"], 10.0)

    @patch("app.services.mailer.httpx.AsyncClient")
    def test_rejected_request_returns_none(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(return_value=_response(401, text="Forbidden"))
        _mock_client(mock_client_class, post)
        with self.assertLogs("app.services.mailer", level="ERROR"):
            result = asyncio.run(send_password_reset_email("user@example.com", TOKEN, _settings()))
        self.assertIsNone(result)

    @patch("app.services.mailer.httpx.AsyncClient")
    def test_transport_error_returns_none(self, mock_client_class: MagicMock) -> None:
        post = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))
        _mock_client(mock_client_class, post)
        result = asyncio.run(send_password_reset_email("user@example.com", TOKEN, _settings()))
        self.assertIsNone(result)


if __name__ == "__main__":
    unittest.main()
