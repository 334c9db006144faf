"""Tests for the set_role operator script, wired to an in-memory database."""

import unittest
from unittest.mock import MagicMock, patch

from app.scripts.set_role import main
from app.services.user_repository import UserRepository
from tests.support import make_session_factory, seed_user


class TestSetRoleScript(unittest.TestCase):
    def setUp(self) -> None:
        self.session_factory = make_session_factory()
        patcher_engine = patch("app.scripts.set_role.create_db_engine", MagicMock())
        patcher_factory = patch(
            "app.scripts.set_role.create_session_factory",
            MagicMock(return_value=self.session_factory),
        )
        patcher_engine.start()
        patcher_factory.start()
        self.addCleanup(patcher_engine.stop)
        self.addCleanup(patcher_factory.stop)

    def _role_of(self, user_id: int) -> str:
        db = self.session_factory()
        try:
            return UserRepository(db).find_by_id(user_id).role
        finally:
            db.close()

    def test_promotes_registered_user(self) -> None:
        user_id = seed_user(self.session_factory, "uid-ops", email="ops@example.com")
        self.assertEqual(main(["ops@example.com", "admin"]), 0)
        self.assertEqual(self._role_of(user_id), "admin")

    def test_unknown_email(self) -> None:
        self.assertEqual(main(["ghost@example.com", "admin"]), 1)

    def test_invalid_role_rejected_by_parser(self) -> None:
        with self.assertRaises(SystemExit):
            main(["ops@example.com", "owner"])


if __name__ == "__main__":
    unittest.main()
