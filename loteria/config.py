"""Environment-based configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy.engine import URL


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def resolve_database_url() -> str:
    """Resolve DB connection string.

    Priority:
      1) DATABASE_URL (explicit)
      2) Build from PG* env vars (common Postgres convention)
      3) Fallback to local sqlite
    """

    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    host = os.getenv("PGHOST")
    user = os.getenv("PGUSER")
    database = os.getenv("PGDATABASE")

    if host and user and database:
        url = URL.create(
            drivername="postgresql+psycopg2",
            username=user,
            password=os.getenv("PGPASSWORD"),
            host=host,
            port=_env_int("PGPORT", 5432),
            database=database,
            query={"sslmode": os.getenv("PGSSLMODE", "require")},
        )
        return url.render_as_string(hide_password=False)

    return "sqlite:///./loteria.db"


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration shared by all environments."""

    APP_ENV: str = os.getenv("APP_ENV", "development")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    TESTING: bool = False

    DB_BACKEND: str = (
        os.getenv("DB_BACKEND")
        or ("mongo" if os.getenv("MONGODB_URI") else "sql")
    ).lower().strip()  # "sql" | "mongo"

    # SQL backend
    DATABASE_URL: str = resolve_database_url()

    # Mongo backend
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB: str = os.getenv("MONGODB_DB", "loteria")

    # Official results API
    LOTTERY_API_BASE_URL: str = os.getenv(
        "LOTTERY_API_BASE_URL", "https://loteriascaixa-api.herokuapp.com/api"
    )
    LOTTERY_API_TIMEOUT: float = _env_float("LOTTERY_API_TIMEOUT", 10.0)
    LOTTERY_API_RETRIES: int = _env_int("LOTTERY_API_RETRIES", 2)
    LOTTERY_API_BACKOFF: float = _env_float("LOTTERY_API_BACKOFF", 0.5)

    # Combination generator
    GOOGLE_API_KEY: str | None = os.getenv("GOOGLE_API_KEY")
    GENAI_MODEL: str = os.getenv("GENAI_MODEL", "gemini-2.5-flash")

    # Official-result polling
    AUTO_CHECK_ON_VIEW: bool = _env_bool("AUTO_CHECK_ON_VIEW", True)
    AUTO_CHECK_INTERVAL_SECONDS: int = _env_int("AUTO_CHECK_INTERVAL_SECONDS", 1800)
    AUTO_CHECK_WORKERS: int = _env_int("AUTO_CHECK_WORKERS", 4)


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    """Development configuration."""

    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    """Production configuration."""

    DEBUG: bool = False


@dataclass(frozen=True)
class TestingConfig(BaseConfig):
    """Configuration used by the test-suite (SQLite, no remote calls on view)."""

    DEBUG: bool = False
    TESTING: bool = True
    DB_BACKEND: str = "sql"
    DATABASE_URL: str = "sqlite:///:memory:"
    AUTO_CHECK_ON_VIEW: bool = False
    GOOGLE_API_KEY: str | None = None


def get_config() -> type[BaseConfig]:
    """Resolve configuration class based on APP_ENV."""

    env = os.getenv("APP_ENV", "development").lower().strip()
    if env == "production":
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
