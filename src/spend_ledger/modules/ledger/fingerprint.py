"""Stable identity keys for ledger entries.

Imported and notification entries collide on minute-granularity time, type,
amount and normalized description. Manual entries carry a per-entry suffix so
a user can record two identical purchases in the same minute, and
template-generated entries are keyed on the template and the target day.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from spend_ledger.modules.ledger.domain import LedgerEntry
from spend_ledger.modules.ledger.models import EntryType


def _epoch_minute(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp()) // 60


def entry_fingerprint(entry: LedgerEntry) -> str:
    description = entry.description.strip().lower()
    return f"{_epoch_minute(entry.occurred_at)}|{entry.type.value}|{entry.amount}|{description}"


def manual_fingerprint(entry: LedgerEntry) -> str:
    return f"{entry_fingerprint(entry)}|manual|{entry.id[-8:]}"


def recurring_entry_id(template_id: str, year: int, month: int, day: int) -> str:
    return f"recurring-{template_id}-{year:04d}-{month:02d}-{day}"


def recurring_fingerprint(
    *, template_id: str, year: int, month: int, day: int, type: EntryType, amount: int
) -> str:
    return f"recurring|{template_id}|{year:04d}-{month:02d}|{day}|{type.value}|{amount}"


def dedupe_entries(
    entries: Iterable[LedgerEntry], existing_fingerprints: Iterable[str] = ()
) -> list[tuple[str, LedgerEntry]]:
    """Drop entries already persisted or already accepted earlier in the batch."""
    seen = set(existing_fingerprints)
    accepted: list[tuple[str, LedgerEntry]] = []
    for entry in entries:
        fp = entry_fingerprint(entry)
        if fp in seen:
            continue
        seen.add(fp)
        accepted.append((fp, entry))
    return accepted
