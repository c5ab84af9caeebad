from __future__ import annotations

import spend_ledger.models  # noqa: F401
from spend_ledger.core.config import settings
from spend_ledger.core.db import engine, is_sqlite
from spend_ledger.core.logging import get_logger, log_event
from spend_ledger.core.models import Base

logger = get_logger(__name__)


def bootstrap() -> None:
    # Production schemas are managed by the Alembic revisions.
    if settings.environment == "dev" and is_sqlite:
        Base.metadata.create_all(engine)
        log_event(logger, "bootstrap.schema.created", database_url=settings.database_url)
