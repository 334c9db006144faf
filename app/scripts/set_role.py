"""
Grant a role to a registered user (e.g. the first admin). Run from project root:
  python -m app.scripts.set_role EMAIL ROLE
Example:
  python -m app.scripts.set_role ops@example.com admin
The user must have registered through POST /api/auth/register first.
"""
import argparse
import logging
import sys

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.database import create_db_engine, create_session_factory
from app.schemas.users import ROLE_VALUES
from app.services.user_repository import UserRepository

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set the role of a registered user.")
    parser.add_argument("email", help="Email of the registered user")
    parser.add_argument("role", choices=sorted(ROLE_VALUES))
    args = parser.parse_args(argv)

    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    email = args.email.strip()
    if not email:
        print("Email must be non-empty.", file=sys.stderr)
        return 1

    settings = get_settings()
    session_factory = create_session_factory(create_db_engine(settings.DATABASE_URL))
    db = session_factory()
    try:
        users = UserRepository(db)
        user = users.find_by_email(email)
        if user is None:
            print(f"No registered user with email '{email}'.", file=sys.stderr)
            return 1
        updated = users.update_role(user.id, args.role)
        if updated is None:
            print(f"User '{email}' was deleted concurrently.", file=sys.stderr)
            return 1
        print(f"User '{email}' (id={updated.id}) now has role '{updated.role}'.")
        return 0
    except SQLAlchemyError as e:
        logger.exception("Role update failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
