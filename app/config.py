"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


def normalize_database_url(raw_url: str) -> str:
    """Rewrite generic postgres URLs to use the psycopg3 driver."""
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql+psycopg://", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return raw_url


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "FinanceTracker"
    app_env: str = "dev"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3)
    database_url: str = "postgresql+psycopg://localhost:5432/finance_tracker_dev"
    db_connect_timeout: int = 10  # seconds
    # Deadline for guarded membership transactions; 0 = no limit
    db_statement_timeout_ms: int = 5000

    # Security
    secret_key: str = ""
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 30
    password_reset_expire_minutes: int = 30
    # Reset tokens are returned in the API response outside prod (no mailer)
    return_reset_token: bool = True

    # Workspaces
    default_currency: str = "UAH"

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.app_env = os.getenv("APP_ENV", self.app_env).strip().lower() or "dev"
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'finance_tracker_dev')}"
        )
        self.database_url = normalize_database_url(os.getenv("DATABASE_URL", default_url))
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))
        self.db_statement_timeout_ms = int(
            os.getenv("DB_STATEMENT_TIMEOUT_MS", str(self.db_statement_timeout_ms))
        )

        self.secret_key = os.getenv("SECRET_KEY", "")
        self.access_token_expire_minutes = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(self.access_token_expire_minutes))
        )
        self.refresh_token_expire_days = int(
            os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", str(self.refresh_token_expire_days))
        )
        self.password_reset_expire_minutes = int(
            os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", str(self.password_reset_expire_minutes))
        )
        self.return_reset_token = self.app_env != "prod"

        currency = os.getenv("DEFAULT_CURRENCY", self.default_currency).strip().upper()
        self.default_currency = currency or "UAH"
