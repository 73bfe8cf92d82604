"""Storage backends: SQLAlchemy engine + session-per-request, or MongoDB."""

from __future__ import annotations

from typing import Any

from flask import Flask, current_app, g
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from loteria.models.base import Base


def create_app_engine(database_url: str) -> Engine:
    url = make_url(database_url)

    # In-memory SQLite lives inside one connection; share it across threads.
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    return create_engine(database_url, pool_pre_ping=True, future=True)


def _init_sql(app: Flask) -> None:
    engine = create_app_engine(str(app.config["DATABASE_URL"]))
    session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    # A single small table; created on startup rather than through migrations.
    Base.metadata.create_all(bind=engine)

    app.extensions["engine"] = engine
    app.extensions["session_factory"] = session_factory

    @app.before_request
    def _open_session() -> None:
        g.db = session_factory()  # type: ignore[attr-defined]

    @app.teardown_request
    def _close_session(exc: BaseException | None) -> None:
        session: Session | None = g.pop("db", None)
        if session is None:
            return

        try:
            if exc is None:
                session.commit()
            else:
                session.rollback()
        finally:
            session.close()


def _init_mongo(app: Flask) -> None:
    from pymongo import ASCENDING, DESCENDING, MongoClient

    client: MongoClient[Any] = MongoClient(str(app.config["MONGODB_URI"]))
    db = client[str(app.config["MONGODB_DB"])]
    db["saved_sets"].create_index([("id", ASCENDING)], unique=True)
    db["saved_sets"].create_index([("created_at", DESCENDING)])

    app.extensions["mongo_client"] = client
    app.extensions["mongo_db"] = db


def init_db(app: Flask) -> None:
    """Initialize the configured storage backend."""

    if str(app.config.get("DB_BACKEND", "sql")) == "mongo":
        _init_mongo(app)
    else:
        _init_sql(app)


def get_db_backend() -> str:
    """Return "sql" or "mongo" for the current app."""

    return str(current_app.config.get("DB_BACKEND", "sql"))


def get_mongo_db() -> Any:
    db = current_app.extensions.get("mongo_db")
    if db is None:
        raise RuntimeError("MongoDB backend not initialized")
    return db


def get_session() -> Session:
    """Get the current request's SQLAlchemy session."""

    session: Session | None = getattr(g, "db", None)
    if session is None:
        raise RuntimeError("Database session not initialized")
    return session


def get_optional_session() -> Session | None:
    """Request session for the SQL backend, None when running on Mongo."""

    if get_db_backend() == "mongo":
        return None
    return get_session()
