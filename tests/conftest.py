"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.test_constants import TEST_PASSWORD, TEST_SECRET_KEY

# Force test DB when pytest runs; don't inherit from .env (avoids polluting finance_tracker_dev)
_test_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
_test_password = os.getenv("PGPASSWORD", "")
_test_host = os.getenv("PGHOST", "localhost")
_test_port = os.getenv("PGPORT", "5432")
_test_auth = f"{_test_user}:{_test_password}" if _test_password else _test_user
_test_server = f"postgresql+psycopg://{_test_auth}@{_test_host}:{_test_port}"
os.environ["DATABASE_URL"] = f"{_test_server}/finance_tracker_test"
os.environ.setdefault("SECRET_KEY", TEST_SECRET_KEY)
os.environ.setdefault("DB_STATEMENT_TIMEOUT_MS", "5000")
os.environ["APP_ENV"] = "test"


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def client_with_db(db: Session) -> TestClient:
    """TestClient with get_db overridden to use the test db session (for integration tests)."""
    from app.db.session import get_db
    from app.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    c = TestClient(app)
    yield c
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(scope="session")
def _ensure_migrations() -> None:
    """Create test DB if needed and run migrations once per test session.

    Skips database-backed tests when the test PostgreSQL server is unreachable.
    """
    import subprocess
    import sys

    from sqlalchemy import create_engine, text
    from sqlalchemy.exc import OperationalError, ProgrammingError

    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    # CREATE DATABASE requires autocommit
    engine = create_engine(f"{_test_server}/postgres", connect_args={"connect_timeout": 3})
    try:
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = 'finance_tracker_test'")
            ).first()
            if exists is None:
                conn.execute(text("CREATE DATABASE finance_tracker_test"))
    except OperationalError as e:
        pytest.skip(f"test PostgreSQL unreachable: {e}")
    except ProgrammingError:
        pass  # created concurrently
    finally:
        engine.dispose()

    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        cwd=project_root,
        capture_output=True,
        text=True,
        timeout=30,
        env=os.environ.copy(),
    )
    assert result.returncode == 0, f"alembic upgrade head failed: {result.stderr}"


@pytest.fixture
def db(_ensure_migrations: None) -> Session:
    """Database session for model tests. All changes are rolled back after each test."""
    from app.db import engine

    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def make_user(db: Session):
    """Factory creating persisted users with unique emails."""
    from app.services.auth import create_user

    def _make(email: str | None = None, name: str | None = None):
        email = email or f"user-{uuid.uuid4().hex[:12]}@example.com"
        return create_user(db, email, TEST_PASSWORD, name)

    return _make
