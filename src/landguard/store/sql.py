"""SQLAlchemy metadata and engine helpers for the key-value entries table."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy import Engine
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import URL
from sqlalchemy.orm import sessionmaker

from landguard.settings import Settings, get_settings

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
TIMESTAMP = sa.DateTime(timezone=True)

METADATA = sa.MetaData()

kv_entries = sa.Table(
    "kv_entries",
    METADATA,
    sa.Column("key", sa.String(length=255), primary_key=True),
    sa.Column("value", JSON_TYPE, nullable=False),
    sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    sa.Column("created_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    sa.Column("updated_at", TIMESTAMP, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
)


def resolve_database_url(settings: Settings | None = None) -> str:
    """Return the SQLAlchemy URL considering overrides and the SQLite default."""

    url_override = os.getenv("LANDGUARD_DATABASE_URL")
    if url_override:
        return url_override

    resolved = settings or get_settings()
    if resolved.storage.database_url:
        return resolved.storage.database_url

    sqlite_path = Path(resolved.storage.sqlite_path)
    return URL.create("sqlite", database=sqlite_path.as_posix()).render_as_string(hide_password=False)


def build_engine(*, echo: bool = False, settings: Settings | None = None, url: str | None = None) -> Engine:
    """Instantiate a SQLAlchemy engine aligned with project settings."""

    resolved_url = url or resolve_database_url(settings)
    connect_args: dict[str, Any] = {}
    if resolved_url.startswith("sqlite:///"):
        connect_args["check_same_thread"] = False
        db_path = resolved_url.removeprefix("sqlite:///")
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return sa.create_engine(resolved_url, echo=echo, future=True, pool_pre_ping=True, connect_args=connect_args)


def session_factory(*, engine: Engine | None = None, settings: Settings | None = None) -> sessionmaker:
    """Return a configured sessionmaker bound to the active engine."""

    bound = engine or build_engine(settings=settings)
    return sessionmaker(bind=bound, autoflush=False, autocommit=False, future=True)


__all__ = ["METADATA", "build_engine", "kv_entries", "resolve_database_url", "session_factory"]
