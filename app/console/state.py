"""View state of the user management table.

Mirrors the server's user list locally. After a successful action the local
rows are patched (flag inverted, role replaced, row dropped) instead of
refetching the list. One action at a time: while an action is in flight
further actions are refused. The lock only guards this console instance.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from app.console.client import AdminApiClient, ConsoleApiError
from app.console.identity import IdentityError

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "Are you sure you want to delete this user? This action cannot be undone."


class UserManagementState:
    def __init__(self, api: AdminApiClient) -> None:
        self._api = api
        self.users: list[dict[str, Any]] = []
        self.loading = False
        self.error = ""
        self.action_in_flight = False

    def find(self, user_id: int) -> dict[str, Any] | None:
        return next((u for u in self.users if u.get("id") == user_id), None)

    def load(self) -> bool:
        """Fetch the full user list. Returns False and sets error on failure."""
        self.loading = True
        self.error = ""
        try:
            self.users = self._api.list_users()
            return True
        except (ConsoleApiError, IdentityError) as e:
            logger.error("Error fetching users: %s", e.message)
            self.error = e.message
            return False
        finally:
            self.loading = False

    @contextmanager
    def _action(self, description: str) -> Iterator[None]:
        self.action_in_flight = True
        self.error = ""
        try:
            yield
        except (ConsoleApiError, IdentityError) as e:
            logger.error("Error %s: %s", description, e.message)
            self.error = e.message
            raise
        finally:
            self.action_in_flight = False

    def _busy(self) -> bool:
        if self.action_in_flight:
            self.error = "Another action is in progress"
            return True
        return False

    def toggle_status(self, user_id: int) -> bool:
        """Activate an inactive user or deactivate an active one."""
        if self._busy():
            return False
        user = self.find(user_id)
        if user is None:
            self.error = "User not found"
            return False
        new_status = not user.get("is_active", False)
        try:
            with self._action("updating user status"):
                self._api.set_status(user_id, new_status)
        except (ConsoleApiError, IdentityError):
            return False
        self.users = [
            {**u, "is_active": new_status} if u.get("id") == user_id else u for u in self.users
        ]
        return True

    def change_role(self, user_id: int, role: str) -> bool:
        if self._busy():
            return False
        if self.find(user_id) is None:
            self.error = "User not found"
            return False
        try:
            with self._action("updating user role"):
                self._api.set_role(user_id, role)
        except (ConsoleApiError, IdentityError):
            return False
        self.users = [{**u, "role": role} if u.get("id") == user_id else u for u in self.users]
        return True

    def delete_user(self, user_id: int, confirm: Callable[[str], bool]) -> bool:
        """Delete after the operator confirms; declining is not an error."""
        if self._busy():
            return False
        if not confirm(DELETE_CONFIRMATION):
            return False
        try:
            with self._action("deleting user"):
                self._api.delete_user(user_id)
        except (ConsoleApiError, IdentityError):
            return False
        self.users = [u for u in self.users if u.get("id") != user_id]
        return True
