"""Rich rendering of the user management table."""

from datetime import datetime
from typing import Any

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from app.console.state import UserManagementState

COLUMNS = ("ID", "Email", "Name", "Role", "Status", "Last Login")


def format_last_login(value: str | None) -> str:
    """ISO timestamp -> local time, or "Never"."""
    if not value:
        return "Never"
    try:
        return datetime.fromisoformat(value).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def status_text(is_active: bool) -> Text:
    if is_active:
        return Text("Active", style="green")
    return Text("Inactive", style="red")


def build_user_table(users: list[dict[str, Any]]) -> Table:
    table = Table(title="User Management", header_style="bold", expand=False)
    for column in COLUMNS:
        table.add_column(column)
    if not users:
        table.add_row("No users found", *[""] * (len(COLUMNS) - 1))
        return table
    for user in users:
        table.add_row(
            str(user.get("id")),
            user.get("email") or "-",
            user.get("display_name") or "-",
            user.get("role", ""),
            status_text(bool(user.get("is_active"))),
            format_last_login(user.get("last_login")),
        )
    return table


def render_state(state: UserManagementState) -> RenderableType:
    """Loading line, or the table followed by the last error (if any)."""
    if state.loading:
        return Text("Loading users...")
    parts: list[RenderableType] = [build_user_table(state.users)]
    if state.error:
        parts.append(Text(f"Error: {state.error}", style="bold red"))
    return Group(*parts)
