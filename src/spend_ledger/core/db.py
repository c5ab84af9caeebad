from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker

from spend_ledger.core.config import settings

database_url = make_url(settings.database_url)
is_sqlite = database_url.get_backend_name() == "sqlite"

# Imports and notification listeners may run outside the thread that opened the file.
engine = create_engine(
    database_url,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if is_sqlite else {},
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def sqlite_database_path() -> Path | None:
    """File behind a SQLite ledger; ``None`` for in-memory or server databases."""
    if not is_sqlite or database_url.database in (None, "", ":memory:"):
        return None
    return Path(database_url.database)
