"""Shared fixtures: in-memory SQLite sessions, a fake token verifier, and an app wired to both."""

from datetime import datetime

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.application import create_app
from app.core.config import Settings
from app.core.database import create_session_factory
from app.core.security import InvalidTokenError
from app.models import Base, User
from app.schemas.auth import VerifiedClaims

PROJECT_ID = "demo-project"


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"FIREBASE_PROJECT_ID": PROJECT_ID, "APP_ENV": "dev"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory() -> sessionmaker[Session]:
    """One shared in-memory SQLite connection so every session sees the same tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return create_session_factory(engine)


class FakeTokenVerifier:
    """Maps literal token strings to claims; anything else is invalid."""

    def __init__(self, tokens: dict[str, VerifiedClaims] | None = None) -> None:
        self.tokens = dict(tokens or {})

    def add(self, token: str, subject: str, email: str | None = None, name: str | None = None) -> None:
        self.tokens[token] = VerifiedClaims(subject=subject, email=email, display_name=name)

    def verify(self, token: str) -> VerifiedClaims:
        try:
            return self.tokens[token]
        except KeyError:
            raise InvalidTokenError("Unknown test token") from None


def make_client() -> tuple[TestClient, sessionmaker[Session], FakeTokenVerifier]:
    session_factory = make_session_factory()
    verifier = FakeTokenVerifier()
    app = create_app(
        settings=make_settings(),
        session_factory=session_factory,
        token_verifier=verifier,
    )
    return TestClient(app), session_factory, verifier


def seed_user(
    session_factory: sessionmaker[Session],
    firebase_uid: str,
    email: str | None = None,
    role: str = "user",
    is_active: bool = True,
    created_at: datetime | None = None,
) -> int:
    """Insert a row directly and return its id."""
    db = session_factory()
    try:
        user = User(
            firebase_uid=firebase_uid,
            email=email if email is not None else f"{firebase_uid}@example.com",
            role=role,
            is_active=is_active,
        )
        if created_at is not None:
            user.created_at = created_at
        db.add(user)
        db.commit()
        return user.id
    finally:
        db.close()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
