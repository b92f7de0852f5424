"""HTTP middleware: request ids, hardening headers, body-size limit and the error body shape."""

import json
import unittest
from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.middleware import install_middleware
from app.core.rate_limit import get_rate_limit_store
from tests.helpers import ADMIN_PASSWORD, ADMIN_USERNAME, ApiTestCase


def _stream(payload: bytes, chunk_size: int = 64 * 1024):
    # A generator body is sent chunked, without Content-Length.
    for start in range(0, len(payload), chunk_size):
        yield payload[start:start + chunk_size]


class TestMiddleware(ApiTestCase):
    def test_health(self) -> None:
        res = self.client.get("/api/health")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(
            res.json(),
            {"status": "ok", "environment": "test", "database": "connected", "mail": "log-only"},
        )

    def test_request_id_echoed_or_generated(self) -> None:
        res = self.client.get("/api/health", headers={"X-Request-ID": "req-42"})
        self.assertEqual(res.headers["X-Request-ID"], "req-42")
        res = self.client.get("/api/health")
        self.assertTrue(res.headers["X-Request-ID"])

    def test_security_headers(self) -> None:
        res = self.client.get("/api/health")
        self.assertEqual(res.headers["X-Content-Type-Options"], "nosniff")
        self.assertEqual(res.headers["X-Frame-Options"], "DENY")
        self.assertEqual(res.headers["Cache-Control"], "no-store")
        self.assertNotIn("Strict-Transport-Security", res.headers)

    def test_oversized_body_rejected(self) -> None:
        res = self.client.post(
            "/api/admin/login",
            content=b"x" * (settings.MAX_BODY_BYTES + 1),
            headers={"content-type": "application/json", "x-csrf-token": self.csrf_token},
        )
        self.assertEqual(res.status_code, 413)
        self.assertEqual(res.json()["message"], "Request body too large")

    def test_oversized_chunked_body_rejected(self) -> None:
        body = json.dumps(
            {"username": ADMIN_USERNAME, "password": "p" * (2 * settings.MAX_BODY_BYTES)}
        ).encode("utf-8")
        res = self.client.post(
            "/api/admin/login",
            content=_stream(body),
            headers={"content-type": "application/json", "x-csrf-token": self.csrf_token},
        )
        self.assertEqual(res.status_code, 413)
        self.assertEqual(res.json(), {"message": "Request body too large"})

    def test_small_chunked_body_accepted(self) -> None:
        self.seed_admin()
        body = json.dumps({"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}).encode("utf-8")
        res = self.client.post(
            "/api/admin/login",
            content=_stream(body, chunk_size=8),
            headers={"content-type": "application/json", "x-csrf-token": self.csrf_token},
        )
        self.assertEqual(res.status_code, 200, res.text)
        self.assertIn("accessToken", res.json())

    def test_malformed_json(self) -> None:
        res = self.client.post(
            "/api/admin/login",
            content=b"{not json",
            headers={"content-type": "application/json", "x-csrf-token": self.csrf_token},
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["message"], "Validation Error")

    def test_unknown_route_uses_error_shape(self) -> None:
        res = self.client.get("/api/nowhere")
        self.assertEqual(res.status_code, 404)
        self.assertIn("message", res.json())


class TestUncaughtErrors(unittest.TestCase):
    """A route that raises still gets the request id, hardening headers and the 500 body."""

    def setUp(self) -> None:
        get_rate_limit_store().reset()
        app = FastAPI()
        install_middleware(app)
        register_exception_handlers(app)

        @app.get("/api/explode")
        def explode() -> None:
            raise RuntimeError("wiring broke")

        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        get_rate_limit_store().reset()

    def test_500_keeps_request_id_and_headers(self) -> None:
        res = self.client.get("/api/explode", headers={"X-Request-ID": "req-500"})
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.headers["X-Request-ID"], "req-500")
        self.assertEqual(res.headers["X-Content-Type-Options"], "nosniff")
        self.assertEqual(res.headers["Cache-Control"], "no-store")
        body = res.json()
        self.assertEqual(body["message"], "Internal Server Error")
        self.assertEqual(body["error"], "RuntimeError: wiring broke")

    def test_500_body_is_generic_in_production(self) -> None:
        with patch.object(settings, "APP_ENV", "production"):
            res = self.client.get("/api/explode")
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json(), {"message": "Internal Server Error"})
        self.assertIn("Strict-Transport-Security", res.headers)
        self.assertIn("X-Request-ID", res.headers)


if __name__ == "__main__":
    unittest.main()
