"""Shared fixtures for API integration tests: fresh schema, test client, CSRF token, seeded users."""

import unittest

from fastapi.testclient import TestClient

from app.core.csrf import CSRF_HEADER_NAME
from app.core.database import SessionLocal, engine
from app.core.rate_limit import get_rate_limit_store
from app.main import app
from app.models import ROLE_ADMIN, ROLE_MODERATOR, Base, User
from app.services.users import create_user

ADMIN_USERNAME = "testadmin"
ADMIN_EMAIL = "testadmin@example.com"
ADMIN_PASSWORD = "testpassword123"


class ApiTestCase(unittest.TestCase):
    """Creates the schema per test and provides a client that already holds a CSRF cookie."""

    def setUp(self) -> None:
        Base.metadata.create_all(engine)
        get_rate_limit_store().reset()
        self.db = SessionLocal()
        self.client = TestClient(app)
        res = self.client.get("/api/csrf-token")
        self.assertEqual(res.status_code, 200)
        self.csrf_token = res.json()["csrfToken"]

    def tearDown(self) -> None:
        self.client.close()
        self.db.close()
        Base.metadata.drop_all(engine)
        get_rate_limit_store().reset()

    def post(self, path: str, json: dict | None = None, token: str | None = None, **kwargs):
        headers = {CSRF_HEADER_NAME: self.csrf_token}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return self.client.post(path, json=json, headers=headers, **kwargs)

    def delete(self, path: str, token: str | None = None):
        headers = {CSRF_HEADER_NAME: self.csrf_token}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return self.client.delete(path, headers=headers)

    def seed_user(
        self,
        username: str,
        email: str,
        password: str,
        role: str = ROLE_MODERATOR,
        needs_password_change: bool = False,
    ) -> User:
        return create_user(
            self.db,
            username=username,
            email=email,
            password=password,
            role=role,
            needs_password_change=needs_password_change,
        )

    def seed_admin(self) -> User:
        return self.seed_user(ADMIN_USERNAME, ADMIN_EMAIL, ADMIN_PASSWORD, role=ROLE_ADMIN)

    def login(self, username: str, password: str) -> dict:
        res = self.post("/api/admin/login", {"username": username, "password": password})
        self.assertEqual(res.status_code, 200, res.text)
        return res.json()

    def reload(self, user_id: int) -> User | None:
        self.db.expire_all()
        return self.db.get(User, user_id)
