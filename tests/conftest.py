from __future__ import annotations

import os

import pytest

# settings and the engine are built on first import of spend_ledger.core.db.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.spend_ledger_test.db")


@pytest.fixture(scope="session", autouse=True)
def _ledger_database_file():
    from spend_ledger.core.db import engine, sqlite_database_path

    yield

    engine.dispose()
    path = sqlite_database_path()
    if path is not None:
        path.unlink(missing_ok=True)


@pytest.fixture(autouse=True)
def _fresh_schema() -> None:
    import spend_ledger.models  # noqa: F401
    from spend_ledger.core.db import engine
    from spend_ledger.core.models import Base

    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


@pytest.fixture
def session():
    from spend_ledger.core.db import SessionLocal

    with SessionLocal() as s:
        yield s
        s.rollback()
