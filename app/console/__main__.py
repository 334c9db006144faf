"""
Terminal console for the user directory. Run from project root:

  python -m app.console register --email you@example.com [--name "Your Name"]
  python -m app.console login --email you@example.com
  python -m app.console admin --email admin@example.com

Requires FIREBASE_API_KEY (to sign in) and CONSOLE_API_BASE_URL (the API).
The password is prompted for when --password is not given.
"""

import argparse
import logging
import shlex
import sys

import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.prompt import Confirm, Prompt

from app.console.client import AdminApiClient, ConsoleApiError
from app.console.display import render_state
from app.console.identity import FirebaseSession, IdentityError, IdentityToolkitClient
from app.console.state import UserManagementState
from app.core.config import get_settings
from app.schemas.users import ROLE_VALUES

logger = logging.getLogger(__name__)

console = Console()

HELP = (
    "Commands: list | role <id> <user|admin> | toggle <id> | delete <id> | help | quit"
)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m app.console", description="User directory console."
    )
    sub = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("register", "Create a Firebase account and register it with the API"),
        ("login", "Sign in and record the login with the API"),
        ("admin", "Interactive user management (admin role required)"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--email", required=True)
        p.add_argument("--password", default=None)
        if name == "register":
            p.add_argument("--name", default=None, help="Display name")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def run_register(
    identity: IdentityToolkitClient,
    http: httpx.Client,
    base_url: str,
    args: argparse.Namespace,
    password: str,
) -> int:
    session = identity.sign_up(args.email, password, display_name=args.name)
    api = AdminApiClient(base_url, session.get_id_token, http)
    api.register()
    user = api.login()
    console.print(f"Registered and signed in as {user.get('email')} (role: {user.get('role')}).")
    return 0


def run_login(
    identity: IdentityToolkitClient,
    http: httpx.Client,
    base_url: str,
    args: argparse.Namespace,
    password: str,
) -> int:
    session = identity.sign_in(args.email, password)
    user = AdminApiClient(base_url, session.get_id_token, http).login()
    console.print(f"Signed in as {user.get('email')} (role: {user.get('role')}).")
    return 0


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        console.print(f"[red]Not a user id: {raw}[/red]")
        return None


def handle_command(state: UserManagementState, line: str) -> bool:
    """Apply one console command. Returns False when the operator quits."""
    try:
        parts = shlex.split(line)
    except ValueError:
        console.print(HELP)
        return True
    if not parts:
        return True
    command, rest = parts[0].lower(), parts[1:]
    if command in ("quit", "exit", "q"):
        return False
    if command == "list":
        state.load()
    elif command == "toggle" and len(rest) == 1:
        user_id = _parse_id(rest[0])
        if user_id is not None:
            state.toggle_status(user_id)
    elif command == "role" and len(rest) == 2:
        user_id = _parse_id(rest[0])
        if rest[1] not in ROLE_VALUES:
            console.print(f"[red]Role must be one of: {', '.join(sorted(ROLE_VALUES))}[/red]")
        elif user_id is not None:
            state.change_role(user_id, rest[1])
    elif command == "delete" and len(rest) == 1:
        user_id = _parse_id(rest[0])
        if user_id is not None:
            state.delete_user(user_id, lambda message: Confirm.ask(message, default=False))
    else:
        console.print(HELP)
        return True
    console.print(render_state(state))
    return True


def run_admin(session: FirebaseSession, http: httpx.Client, base_url: str) -> int:
    state = UserManagementState(AdminApiClient(base_url, session.get_id_token, http))
    state.load()
    console.print(render_state(state))
    console.print(HELP)
    while True:
        try:
            line = Prompt.ask("admin")
        except (EOFError, KeyboardInterrupt):
            console.print()
            return 0
        if not handle_command(state, line):
            return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    settings = get_settings()
    api_key = settings.FIREBASE_API_KEY.get_secret_value() if settings.FIREBASE_API_KEY else ""
    password = args.password or Prompt.ask("Password", password=True)

    with httpx.Client(timeout=settings.CONSOLE_REQUEST_TIMEOUT_SEC) as http:
        try:
            identity = IdentityToolkitClient(api_key, http)
            base_url = settings.CONSOLE_API_BASE_URL
            if args.command == "register":
                return run_register(identity, http, base_url, args, password)
            if args.command == "login":
                return run_login(identity, http, base_url, args, password)
            return run_admin(identity.sign_in(args.email, password), http, base_url)
        except (IdentityError, ConsoleApiError) as e:
            logger.debug("Console command %s failed", args.command, exc_info=True)
            console.print(f"[bold red]Error:[/bold red] {e.message}")
            return 1


if __name__ == "__main__":
    sys.exit(main())
