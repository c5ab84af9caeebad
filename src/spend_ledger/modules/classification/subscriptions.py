from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable

from spend_ledger.core.config import settings
from spend_ledger.modules.ledger.domain import LedgerEntry
from spend_ledger.modules.ledger.models import EntryType, SpendingKind

_WS_RE = re.compile(r"\s+")


def subscription_key(entry: LedgerEntry) -> str:
    merchant = (entry.merchant or "").strip()
    label = merchant or entry.description
    return f"{_WS_RE.sub('', label.lower())}:{entry.amount}"


def is_subscription_candidate(entry: LedgerEntry) -> bool:
    return (
        entry.type == EntryType.EXPENSE
        and bool(entry.counted_in_expense)
        and entry.spending_kind == SpendingKind.NORMAL
    )


def is_monthly_series(entries: list[LedgerEntry]) -> bool:
    """True when every consecutive pair of occurrences is spaced roughly a month apart."""
    if len(entries) < settings.subscription_min_occurrences:
        return False
    ordered = sorted(entries, key=lambda e: e.occurred_at)
    return all(
        settings.subscription_min_gap_days
        <= (current.occurred_at.date() - previous.occurred_at.date()).days
        <= settings.subscription_max_gap_days
        for previous, current in zip(ordered, ordered[1:])
    )


def detect_subscription_keys(entries: Iterable[LedgerEntry]) -> set[str]:
    groups: dict[str, list[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        if is_subscription_candidate(entry):
            groups[subscription_key(entry)].append(entry)
    return {key for key, members in groups.items() if is_monthly_series(members)}
