"""Terminal admin console: token minting, API client, table view state and rendering."""

from app.console.client import AdminApiClient, ConsoleApiError
from app.console.identity import FirebaseSession, IdentityError, IdentityToolkitClient
from app.console.state import UserManagementState

__all__ = [
    "AdminApiClient",
    "ConsoleApiError",
    "FirebaseSession",
    "IdentityError",
    "IdentityToolkitClient",
    "UserManagementState",
]
