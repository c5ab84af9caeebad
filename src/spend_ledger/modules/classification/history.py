"""Per-call memory of how the user categorized merchants before.

Lookup keys, most specific first:

- ``p:<merchant>|<description>``: exact merchant and description pair
- ``m:<merchant>``: normalized merchant of at least two characters
- ``d:<token>``: description words of at least four characters
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from spend_ledger.modules.classification.keywords import GENERIC_CATEGORIES
from spend_ledger.modules.importer.normalize import normalize_token
from spend_ledger.modules.ledger.domain import LedgerEntry

_TOKEN_SPLIT_RE = re.compile(r"[\s,()\[\]/·\-_:]+")

MIN_MERCHANT_LEN = 2
MIN_TOKEN_LEN = 4


def _merchant_key(merchant: str | None) -> str | None:
    normalized = normalize_token(merchant)
    return f"m:{normalized}" if len(normalized) >= MIN_MERCHANT_LEN else None


def _pair_key(merchant: str | None, description: str) -> str | None:
    m = normalize_token(merchant)
    d = normalize_token(description)
    if not m or not d:
        return None
    return f"p:{m}|{d}"


def _token_keys(description: str) -> list[str]:
    keys: list[str] = []
    for token in _TOKEN_SPLIT_RE.split(description.lower()):
        token = token.strip()
        if len(token) >= MIN_TOKEN_LEN and not token.isdigit():
            key = f"d:{token}"
            if key not in keys:
                keys.append(key)
    return keys


def history_keys(description: str, merchant: str | None) -> list[str]:
    keys = [_pair_key(merchant, description), _merchant_key(merchant)]
    return [k for k in keys if k] + _token_keys(description)


def is_memorable(category: str | None) -> bool:
    return bool(category and category.strip()) and category not in GENERIC_CATEGORIES


class CategoryHistory:
    def __init__(self) -> None:
        self._categories: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._categories)

    @classmethod
    def from_entries(cls, entries: Iterable[LedgerEntry]) -> CategoryHistory:
        """Seed from persisted expenses; the newest entry owns each key."""
        history = cls()
        newest_first = sorted(
            (e for e in entries if e.is_expense), key=lambda e: e.occurred_at, reverse=True
        )
        for entry in newest_first:
            if not is_memorable(entry.category):
                continue
            for key in history_keys(entry.description, entry.merchant):
                history._categories.setdefault(key, entry.category)
        return history

    def remember(self, entry: LedgerEntry) -> None:
        if not entry.is_expense or not is_memorable(entry.category):
            return
        for key in history_keys(entry.description, entry.merchant):
            self._categories[key] = entry.category

    def recommend(self, description: str, merchant: str | None) -> str | None:
        for key in history_keys(description, merchant):
            category = self._categories.get(key)
            if category is not None:
                return category
        return None
