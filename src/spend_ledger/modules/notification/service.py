from __future__ import annotations

from datetime import datetime

from spend_ledger.core.logging import get_logger, log_event
from spend_ledger.modules.ledger.domain import ParsedRecord
from spend_ledger.modules.notification import parser
from spend_ledger.modules.notification.dedupe import NotificationDeduplicator
from spend_ledger.modules.notification.source_policy import is_supported_source

logger = get_logger(__name__)


def accept_notification(
    package: str,
    title: str | None,
    text: str | None,
    *,
    deduplicator: NotificationDeduplicator,
    posted_at: float | None = None,
    now: datetime | None = None,
) -> ParsedRecord | None:
    """Run a posted notification through source policy, de-duplication and parsing."""
    if not is_supported_source(package, title, text):
        log_event(logger, "notification.skipped", package=package, reason="unsupported_source")
        return None
    if not deduplicator.should_ingest(package, title, text, posted_at=posted_at):
        log_event(logger, "notification.skipped", package=package, reason="duplicate")
        return None

    record = parser.parse(title, text, now=now)
    if record is None:
        log_event(logger, "notification.skipped", package=package, reason="no_amount")
        return None
    log_event(
        logger,
        "notification.parsed",
        package=package,
        signed_amount=record.signed_amount,
    )
    return record
