from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from spend_ledger.modules.ledger.models import EntryType, SpendingKind


def _required_text(v: str, name: str) -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{name} is required")
    return v


def _optional_text(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


class _LedgerInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    @field_validator("type", "forced_type", mode="before", check_fields=False)
    @classmethod
    def _parse_type(cls, v: object) -> EntryType | None:
        if v is None or v == "":
            return None
        return EntryType.parse(v)

    @field_validator("spending_kind", mode="before", check_fields=False)
    @classmethod
    def _parse_kind(cls, v: object) -> SpendingKind:
        return SpendingKind.parse(v)


class ClassificationRuleIn(_LedgerInput):
    keyword: str
    spending_kind: SpendingKind = SpendingKind.NORMAL
    category: str = ""
    forced_type: EntryType | None = None
    enabled: bool = True

    @field_validator("keyword")
    @classmethod
    def _normalize_keyword(cls, v: str) -> str:
        return _required_text(v, "keyword").lower()

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: str) -> str:
        return (v or "").strip()


class ManualEntryIn(_LedgerInput):
    occurred_at: datetime
    amount: int = Field(gt=0)
    type: EntryType = EntryType.EXPENSE
    description: str
    category: str = ""
    merchant: str | None = None
    spending_kind: SpendingKind = SpendingKind.NORMAL
    account_mask: str | None = None
    counterparty_name: str | None = None

    @field_validator("description")
    @classmethod
    def _description_required(cls, v: str) -> str:
        return _required_text(v, "description")

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("merchant", "account_mask", "counterparty_name")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return _optional_text(v)


class EntryUpdateIn(_LedgerInput):
    type: EntryType
    amount: int = Field(gt=0)
    description: str
    category: str = ""
    merchant: str | None = None
    spending_kind: SpendingKind = SpendingKind.NORMAL

    @field_validator("description")
    @classmethod
    def _description_required(cls, v: str) -> str:
        return _required_text(v, "description")

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("merchant")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return _optional_text(v)


class QuickTemplateIn(_LedgerInput):
    name: str
    type: EntryType = EntryType.EXPENSE
    amount: int = Field(gt=0)
    description: str
    merchant: str | None = None
    category: str = ""
    spending_kind: SpendingKind = SpendingKind.NORMAL
    repeat_monthly_day: int | None = None

    @field_validator("name", "description")
    @classmethod
    def _text_required(cls, v: str) -> str:
        return _required_text(v, "name and description")

    @field_validator("merchant")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return _optional_text(v)

    @field_validator("category")
    @classmethod
    def _strip_category(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("repeat_monthly_day")
    @classmethod
    def _clamp_day(cls, v: int | None) -> int | None:
        if v is None:
            return None
        return min(max(int(v), 1), 31)


class OwnedAccountIn(BaseModel):
    bank: str = ""
    account_mask: str
    owner_name: str

    @field_validator("account_mask", "owner_name")
    @classmethod
    def _text_required(cls, v: str) -> str:
        return _required_text(v, "account_mask and owner_name")

    @field_validator("bank")
    @classmethod
    def _strip_bank(cls, v: str) -> str:
        return (v or "").strip()


class InstallmentPlanIn(BaseModel):
    card_last4: str
    merchant: str
    monthly_amount: int = Field(gt=0)
    total_months: int = Field(gt=0, le=120)
    start_year: int = Field(ge=1900, le=9999)
    start_month: int = Field(ge=1, le=12)
    id: str | None = None

    @field_validator("card_last4")
    @classmethod
    def _last_four_digits(cls, v: str) -> str:
        digits = "".join(ch for ch in (v or "") if ch.isdigit())
        if not digits:
            raise ValueError("card_last4 must contain digits")
        return digits[-4:]

    @field_validator("merchant")
    @classmethod
    def _merchant_required(cls, v: str) -> str:
        return _required_text(v, "merchant")
