"""PostgreSQL connection and session management."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Build the pooled engine; connections are acquired per query."""
    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Request-scoped sessions; rows returned by a commit stay readable after it."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency that yields a DB session from the app's factory and closes it when done."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
