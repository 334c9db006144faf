"""Persistence for local user records. The only module that issues SQL against ``users``.

Every operation is a single statement. Lookups and updates return the affected
row, or None when no row matched; delete returns whether a row was removed.
Writes commit on success and roll back on any database error. Concurrent
updates of the same row are not serialized (last write wins).
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import User
from app.schemas.users import DEFAULT_ROLE, ROLE_VALUES

logger = logging.getLogger(__name__)


class UserConflictError(Exception):
    """Raised when an insert violates the uniqueness of firebase_uid or email."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UserRepository:
    """Data access for the users table, bound to one request-scoped session."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_external_id(self, firebase_uid: str) -> User | None:
        return self._db.query(User).filter(User.firebase_uid == firebase_uid).first()

    def find_by_id(self, user_id: int) -> User | None:
        return self._db.query(User).filter(User.id == user_id).first()

    def find_by_email(self, email: str) -> User | None:
        return self._db.query(User).filter(User.email == email).first()

    def list_all(self) -> Sequence[User]:
        """All users, most recently created first (id breaks ties)."""
        return (
            self._db.query(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )

    def insert(
        self,
        firebase_uid: str,
        email: str | None,
        display_name: str | None,
        role: str = DEFAULT_ROLE,
    ) -> User:
        """Insert an active user. Raises UserConflictError on a duplicate uid or email."""
        if role not in ROLE_VALUES:
            raise ValueError(f"role must be one of {sorted(ROLE_VALUES)}")
        stmt = (
            insert(User)
            .values(
                firebase_uid=firebase_uid,
                email=email,
                display_name=display_name,
                role=role,
                is_active=True,
            )
            .returning(User)
        )
        try:
            user = self._db.scalars(stmt).one()
            self._db.commit()
        except IntegrityError as e:
            self._db.rollback()
            logger.info("Insert rejected by unique constraint for uid=%s", firebase_uid)
            raise UserConflictError("User already exists") from e
        except SQLAlchemyError:
            self._db.rollback()
            raise
        return user

    def update_active_flag(self, user_id: int, is_active: bool) -> User | None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(is_active=is_active)
            .returning(User)
        )
        return self._update_one(stmt)

    def update_role(self, user_id: int, role: str) -> User | None:
        if role not in ROLE_VALUES:
            raise ValueError(f"role must be one of {sorted(ROLE_VALUES)}")
        stmt = update(User).where(User.id == user_id).values(role=role).returning(User)
        return self._update_one(stmt)

    def touch_last_login(self, firebase_uid: str) -> User | None:
        """Set last_login to the database's current time."""
        stmt = (
            update(User)
            .where(User.firebase_uid == firebase_uid)
            .values(last_login=func.now())
            .returning(User)
        )
        return self._update_one(stmt)

    def delete(self, user_id: int) -> bool:
        try:
            result = self._db.execute(delete(User).where(User.id == user_id))
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise
        return result.rowcount > 0

    def _update_one(self, stmt) -> User | None:
        try:
            user = self._db.scalars(
                stmt, execution_options={"synchronize_session": "fetch"}
            ).first()
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise
        return user
