"""ORM model for application users (identity-provider link and RBAC)."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    func,
    true,
)

from app.models.base import Base


class User(Base):
    """
    Local record of a Firebase account.

    firebase_uid: the identity provider's subject id; the only join key to Firebase.
    role: 'admin' or 'user'
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    firebase_uid = Column(String(128), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True, unique=True, index=True)
    display_name = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default="user", server_default="user")
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_login = Column(DateTime(timezone=True), nullable=True)
