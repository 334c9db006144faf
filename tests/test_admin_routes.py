"""API tests for /api/admin/users: RBAC, listing order, status/role changes, deletion."""

import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.services.user_repository import UserRepository
from tests.support import bearer, make_client, seed_user

ADMIN = bearer("admin-token")


class AdminRoutesTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.client, self.session_factory, self.verifier = make_client()
        self.verifier.add("admin-token", "uid-admin", email="admin@example.com")
        self.verifier.add("user-token", "uid-user", email="user@example.com")
        base = datetime(2026, 1, 1, 12, 0, 0)
        self.admin_id = seed_user(
            self.session_factory, "uid-admin", role="admin", created_at=base - timedelta(days=10)
        )
        self.user_id = seed_user(self.session_factory, "uid-user", created_at=base)

    def _get(self, user_id: int) -> dict:
        return self.client.get(f"/api/admin/users/{user_id}", headers=ADMIN).json()


class TestAdminGateway(AdminRoutesTestCase):
    def test_missing_token(self) -> None:
        resp = self.client.get("/api/admin/users")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "Unauthorized: No token provided"})

    def test_invalid_token(self) -> None:
        self.assertEqual(self.client.get("/api/admin/users", headers=bearer("forged")).status_code, 401)

    def test_non_admin_forbidden(self) -> None:
        resp = self.client.get("/api/admin/users", headers=bearer("user-token"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "Forbidden: Admin access required"})

    def test_non_admin_cannot_mutate(self) -> None:
        resp = self.client.patch(
            f"/api/admin/users/{self.user_id}/role",
            headers=bearer("user-token"),
            json={"role": "admin"},
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self._get(self.user_id)["user"]["role"], "user")

    def test_deactivated_admin_forbidden(self) -> None:
        self.verifier.add("old-admin-token", "uid-old-admin")
        seed_user(self.session_factory, "uid-old-admin", role="admin", is_active=False)
        resp = self.client.get("/api/admin/users", headers=bearer("old-admin-token"))
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "Account is deactivated"})

    def test_unregistered_account_forbidden(self) -> None:
        self.verifier.add("stranger-token", "uid-stranger")
        resp = self.client.get("/api/admin/users", headers=bearer("stranger-token"))
        self.assertEqual(resp.status_code, 403)


class TestListAndGet(AdminRoutesTestCase):
    def test_list_newest_first(self) -> None:
        newest = seed_user(
            self.session_factory, "uid-newest", created_at=datetime(2026, 6, 1, 0, 0, 0)
        )
        resp = self.client.get("/api/admin/users", headers=ADMIN)
        self.assertEqual(resp.status_code, 200)
        ids = [u["id"] for u in resp.json()["users"]]
        self.assertEqual(ids, [newest, self.user_id, self.admin_id])

    def test_get_existing(self) -> None:
        resp = self.client.get(f"/api/admin/users/{self.user_id}", headers=ADMIN)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["firebase_uid"], "uid-user")

    def test_get_missing(self) -> None:
        resp = self.client.get("/api/admin/users/9999", headers=ADMIN)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "User not found"})

    def test_non_integer_id_is_bad_request(self) -> None:
        resp = self.client.get("/api/admin/users/abc", headers=ADMIN)
        self.assertEqual(resp.status_code, 400)
        self.assertIn("error", resp.json())

    def test_database_failure_is_500(self) -> None:
        with patch.object(
            UserRepository,
            "list_all",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            resp = self.client.get("/api/admin/users", headers=ADMIN)
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Failed to fetch users"})


class TestUpdateStatus(AdminRoutesTestCase):
    def test_deactivate_existing(self) -> None:
        resp = self.client.patch(
            f"/api/admin/users/{self.user_id}/status", headers=ADMIN, json={"is_active": False}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["user"]["is_active"])

    def test_missing_user(self) -> None:
        resp = self.client.patch(
            "/api/admin/users/9999/status", headers=ADMIN, json={"is_active": False}
        )
        self.assertEqual(resp.status_code, 404)

    def test_non_boolean_rejected(self) -> None:
        for body in ({"is_active": "false"}, {"is_active": 0}, {"is_active": None}, {}):
            resp = self.client.patch(
                f"/api/admin/users/{self.user_id}/status", headers=ADMIN, json=body
            )
            self.assertEqual(resp.status_code, 400, body)
            self.assertEqual(resp.json(), {"error": "is_active must be a boolean"})
        self.assertTrue(self._get(self.user_id)["user"]["is_active"])

    def test_missing_body_rejected(self) -> None:
        resp = self.client.patch(f"/api/admin/users/{self.user_id}/status", headers=ADMIN)
        self.assertEqual(resp.status_code, 400)

    def test_deactivated_user_locked_out_until_reactivated(self) -> None:
        self.client.patch(
            f"/api/admin/users/{self.user_id}/status", headers=ADMIN, json={"is_active": False}
        )
        self.assertEqual(
            self.client.post("/api/auth/login", headers=bearer("user-token")).status_code, 403
        )
        self.assertEqual(
            self.client.get("/api/auth/profile", headers=bearer("user-token")).status_code, 403
        )
        self.client.patch(
            f"/api/admin/users/{self.user_id}/status", headers=ADMIN, json={"is_active": True}
        )
        self.assertEqual(
            self.client.get("/api/auth/profile", headers=bearer("user-token")).status_code, 200
        )


class TestUpdateRole(AdminRoutesTestCase):
    def test_promote(self) -> None:
        resp = self.client.patch(
            f"/api/admin/users/{self.user_id}/role", headers=ADMIN, json={"role": "admin"}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["user"]["role"], "admin")
        self.assertEqual(
            self.client.get("/api/admin/users", headers=bearer("user-token")).status_code, 200
        )

    def test_invalid_role_leaves_record_unchanged(self) -> None:
        for body in ({"role": "superuser"}, {"role": ""}, {"role": None}, {}):
            resp = self.client.patch(
                f"/api/admin/users/{self.user_id}/role", headers=ADMIN, json=body
            )
            self.assertEqual(resp.status_code, 400, body)
            self.assertEqual(resp.json(), {"error": "Invalid role"})
        self.assertEqual(self._get(self.user_id)["user"]["role"], "user")

    def test_missing_user(self) -> None:
        resp = self.client.patch("/api/admin/users/9999/role", headers=ADMIN, json={"role": "user"})
        self.assertEqual(resp.status_code, 404)


class TestDelete(AdminRoutesTestCase):
    def test_delete_other_user(self) -> None:
        resp = self.client.delete(f"/api/admin/users/{self.user_id}", headers=ADMIN)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"message": "User deleted successfully"})
        follow_up = self.client.get(f"/api/admin/users/{self.user_id}", headers=ADMIN)
        self.assertEqual(follow_up.status_code, 404)

    def test_cannot_delete_self(self) -> None:
        resp = self.client.delete(f"/api/admin/users/{self.admin_id}", headers=ADMIN)
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Cannot delete your own account"})
        self.assertEqual(
            self.client.get(f"/api/admin/users/{self.admin_id}", headers=ADMIN).status_code, 200
        )

    def test_delete_missing(self) -> None:
        resp = self.client.delete("/api/admin/users/9999", headers=ADMIN)
        self.assertEqual(resp.status_code, 404)


class TestFailureLogging(AdminRoutesTestCase):
    """Client errors are logged with the operation that rejected them."""

    def _operations(self, cm) -> list:
        return [getattr(record, "operation", None) for record in cm.records]

    def test_not_found_logged(self) -> None:
        with self.assertLogs("app.api", level="INFO") as cm:
            self.client.get("/api/admin/users/9999", headers=ADMIN)
        self.assertIn("get_user", self._operations(cm))

    def test_invalid_role_logged(self) -> None:
        with self.assertLogs("app.api", level="INFO") as cm:
            self.client.patch(
                f"/api/admin/users/{self.user_id}/role", headers=ADMIN, json={"role": "root"}
            )
        self.assertIn("update_user_role", self._operations(cm))

    def test_invalid_status_logged(self) -> None:
        with self.assertLogs("app.api", level="INFO") as cm:
            self.client.patch(
                f"/api/admin/users/{self.user_id}/status", headers=ADMIN, json={"is_active": "no"}
            )
        self.assertIn("update_user_status", self._operations(cm))

    def test_self_delete_logged(self) -> None:
        with self.assertLogs("app.api", level="INFO") as cm:
            self.client.delete(f"/api/admin/users/{self.admin_id}", headers=ADMIN)
        self.assertIn("delete_user", self._operations(cm))

    def test_non_admin_logged(self) -> None:
        with self.assertLogs("app.api", level="INFO") as cm:
            self.client.get("/api/admin/users", headers=bearer("user-token"))
        self.assertIn("require_admin", self._operations(cm))


if __name__ == "__main__":
    unittest.main()
