from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime

from spend_ledger.modules.ledger.models import EntrySource, EntryType, SpendingKind

UNCATEGORIZED_DESCRIPTION = "Uncategorized transaction"


@dataclass(frozen=True)
class ParsedRecord:
    occurred_at: datetime
    signed_amount: int
    description: str
    source: EntrySource
    merchant: str | None = None
    account_mask: str | None = None
    from_account_mask: str | None = None
    to_account_mask: str | None = None
    counterparty_name: str | None = None
    raw: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LedgerEntry:
    occurred_at: datetime
    amount: int
    type: EntryType
    category: str
    description: str
    merchant: str | None
    source: EntrySource
    spending_kind: SpendingKind = SpendingKind.NORMAL
    counted_in_expense: bool | None = None
    account_mask: str | None = None
    counterparty_name: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if self.counted_in_expense is None:
            object.__setattr__(self, "counted_in_expense", self.type == EntryType.EXPENSE)

    @property
    def is_expense(self) -> bool:
        return self.type == EntryType.EXPENSE

    def normalized(self) -> LedgerEntry:
        """Re-establish the type / spending-kind / counted-in-expense invariants."""
        kind = self.spending_kind if self.type == EntryType.EXPENSE else SpendingKind.NORMAL
        return replace(
            self,
            spending_kind=kind,
            counted_in_expense=self.type == EntryType.EXPENSE,
        )


@dataclass(frozen=True)
class ClassificationRule:
    keyword: str
    spending_kind: SpendingKind
    category: str
    forced_type: EntryType | None = None
    enabled: bool = True
    created_at: datetime | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "keyword", self.keyword.strip().lower())


@dataclass(frozen=True)
class OwnedAccount:
    bank: str
    account_mask: str
    owner_name: str


@dataclass(frozen=True)
class QuickTemplate:
    name: str
    type: EntryType
    amount: int
    description: str
    merchant: str | None
    category: str
    spending_kind: SpendingKind = SpendingKind.NORMAL
    repeat_monthly_day: int | None = None
    enabled: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
