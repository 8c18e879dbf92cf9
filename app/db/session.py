"""
Database session management. SQLAlchemy 2.x style.
"""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings

settings = get_settings()
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
    echo=settings.debug,
    connect_args={
        "connect_timeout": settings.db_connect_timeout,
        "options": "-c timezone=UTC",
    },
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


def check_db_connection() -> None:
    """
    Verify database connectivity. Raises if unreachable.
    Call during application startup.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, timeout_ms: int | None = None) -> Iterator[Session]:
    """Run a unit of work that commits on normal exit and rolls back otherwise.

    timeout_ms sets a statement deadline for the rest of the transaction
    (SET LOCAL, so it ends with it). None uses DB_STATEMENT_TIMEOUT_MS; 0 disables.
    Any exception, including cancellation, rolls the session back before
    propagating.
    """
    if timeout_ms is None:
        timeout_ms = get_settings().db_statement_timeout_ms
    try:
        if timeout_ms and timeout_ms > 0:
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
