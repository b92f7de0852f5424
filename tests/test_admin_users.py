"""Admin user management: list, create moderators, delete accounts, role enforcement."""

import unittest

from app.core.security import verify_password
from app.models import ROLE_ADMIN, User
from tests.helpers import ADMIN_PASSWORD, ADMIN_USERNAME, ApiTestCase


class AdminTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin = self.seed_admin()
        self.token = self.login(ADMIN_USERNAME, ADMIN_PASSWORD)["accessToken"]


class TestCreateModerator(AdminTestCase):
    def test_creates_moderator_with_temporary_password(self) -> None:
        res = self.post(
            "/api/admin/users", {"username": "newModTest", "email": "newmod@example.com"}, self.token
        )
        self.assertEqual(res.status_code, 201, res.text)
        body = res.json()
        self.assertEqual(body["message"], "Moderator created successfully.")
        self.assertEqual(len(body["temporaryPassword"]), 12)
        self.assertIn("userId", body)

        stored = self.reload(body["userId"])
        self.assertEqual(stored.role, "moderator")
        self.assertTrue(stored.needs_password_change)
        self.assertNotEqual(stored.password, body["temporaryPassword"])
        self.assertTrue(verify_password(body["temporaryPassword"], stored.password))

    def test_new_moderator_must_change_password(self) -> None:
        res = self.post(
            "/api/admin/users", {"username": "firstlogin", "email": "first@example.com"}, self.token
        )
        temporary = res.json()["temporaryPassword"]
        body = self.login("firstlogin", temporary)
        self.assertTrue(body["needsPasswordChange"])

    def test_duplicate_username(self) -> None:
        self.seed_user("modTarget", "unique1@example.com", "somepassword1")
        res = self.post(
            "/api/admin/users", {"username": "modTarget", "email": "newunique@example.com"}, self.token
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn({"path": "username", "msg": "Username already in use"}, res.json()["errors"])

    def test_duplicate_email_ignores_case(self) -> None:
        self.seed_user("modTarget", "unique1@example.com", "somepassword1")
        res = self.post(
            "/api/admin/users", {"username": "otherMod", "email": "Unique1@Example.com"}, self.token
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["errors"], [{"path": "email", "msg": "Email already in use"}])

    def test_invalid_input(self) -> None:
        res = self.post("/api/admin/users", {"username": "ab", "email": "bad"}, self.token)
        self.assertEqual(res.status_code, 400)
        paths = {e["path"] for e in res.json()["errors"]}
        self.assertEqual(paths, {"username", "email"})

    def test_moderator_cannot_create(self) -> None:
        self.seed_user("plainmod", "plainmod@example.com", "modpassword1")
        mod_token = self.login("plainmod", "modpassword1")["accessToken"]
        res = self.post(
            "/api/admin/users", {"username": "escalate", "email": "escalate@example.com"}, mod_token
        )
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()["message"], "Forbidden: admin role required")
        self.db.expire_all()
        self.assertIsNone(self.db.query(User).filter(User.username == "escalate").first())

    def test_requires_token(self) -> None:
        res = self.post("/api/admin/users", {"username": "anon", "email": "anon@example.com"})
        self.assertEqual(res.status_code, 401)


class TestListUsers(AdminTestCase):
    def test_lists_accounts_without_secrets(self) -> None:
        self.seed_user("listedmod", "listed@example.com", "modpassword1")
        res = self.client.get("/api/admin/users", headers={"Authorization": f"Bearer {self.token}"})
        self.assertEqual(res.status_code, 200)
        users = res.json()["users"]
        self.assertEqual({u["username"] for u in users}, {ADMIN_USERNAME, "listedmod"})
        for user in users:
            self.assertNotIn("password", user)
            self.assertNotIn("refreshToken", user)
            self.assertNotIn("passwordResetToken", user)


class TestDeleteUser(AdminTestCase):
    def test_deletes_moderator(self) -> None:
        mod = self.seed_user("doomed", "doomed@example.com", "modpassword1")
        res = self.delete(f"/api/admin/users/{mod.id}", self.token)
        self.assertEqual(res.status_code, 204)
        self.assertEqual(res.content, b"")
        self.assertIsNone(self.reload(mod.id))

    def test_unknown_user(self) -> None:
        res = self.delete("/api/admin/users/9999", self.token)
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["message"], "User not found")

    def test_cannot_delete_self(self) -> None:
        res = self.delete(f"/api/admin/users/{self.admin.id}", self.token)
        self.assertEqual(res.status_code, 403)
        self.assertIsNotNone(self.reload(self.admin.id))

    def test_cannot_delete_other_admin(self) -> None:
        other = self.seed_user("otheradmin", "other@example.com", "adminpassword1", role=ROLE_ADMIN)
        res = self.delete(f"/api/admin/users/{other.id}", self.token)
        self.assertEqual(res.status_code, 403)
        self.assertEqual(
            res.json()["message"], "Administrators cannot delete another administrator account."
        )
        self.assertIsNotNone(self.reload(other.id))

    def test_moderator_cannot_delete(self) -> None:
        mod = self.seed_user("plainmod", "plainmod@example.com", "modpassword1")
        victim = self.seed_user("victim", "victim@example.com", "modpassword1")
        mod_token = self.login("plainmod", "modpassword1")["accessToken"]
        res = self.delete(f"/api/admin/users/{victim.id}", mod_token)
        self.assertEqual(res.status_code, 403)
        self.assertIsNotNone(self.reload(victim.id))
        self.assertIsNotNone(self.reload(mod.id))


if __name__ == "__main__":
    unittest.main()
