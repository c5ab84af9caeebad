from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from spend_ledger.core.models import Base, StringPrimaryKey, Timestamped


class _TolerantEnum(str, enum.Enum):
    """String enum whose ``parse`` never raises on unknown stored text."""

    @classmethod
    def default(cls):
        raise NotImplementedError

    @classmethod
    def parse(cls, value: object):
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return cls.default()


class EntryType(_TolerantEnum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"

    @classmethod
    def default(cls) -> EntryType:
        return cls.EXPENSE


class EntrySource(_TolerantEnum):
    NOTIFICATION = "NOTIFICATION"
    CSV_IMPORT = "CSV_IMPORT"
    EXCEL_IMPORT = "EXCEL_IMPORT"
    PDF_IMPORT = "PDF_IMPORT"
    MANUAL = "MANUAL"

    @classmethod
    def default(cls) -> EntrySource:
        return cls.MANUAL


class SpendingKind(_TolerantEnum):
    NORMAL = "NORMAL"
    SUBSCRIPTION = "SUBSCRIPTION"
    INSTALLMENT = "INSTALLMENT"
    LOAN = "LOAN"

    @classmethod
    def default(cls) -> SpendingKind:
        return cls.NORMAL


class LedgerEntryRecord(StringPrimaryKey, Timestamped, Base):
    __tablename__ = "ledger_entry"

    fingerprint: Mapped[str] = mapped_column(Text, unique=True, index=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), index=True)
    amount: Mapped[int] = mapped_column(BigInteger)
    type: Mapped[str] = mapped_column(String(20))
    category: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text)
    merchant: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(20))
    spending_kind: Mapped[str] = mapped_column(String(20), default=SpendingKind.NORMAL.value)
    counted_in_expense: Mapped[bool] = mapped_column(Boolean, default=False)
    account_mask: Mapped[str | None] = mapped_column(String(100), nullable=True)
    counterparty_name: Mapped[str | None] = mapped_column(String(200), nullable=True)


class ClassificationRuleRecord(StringPrimaryKey, Timestamped, Base):
    __tablename__ = "ledger_classification_rule"

    keyword: Mapped[str] = mapped_column(String(200), unique=True, index=True)
    spending_kind: Mapped[SpendingKind] = mapped_column(Enum(SpendingKind, native_enum=False))
    category: Mapped[str] = mapped_column(String(100))
    forced_type: Mapped[EntryType | None] = mapped_column(
        Enum(EntryType, native_enum=False), nullable=True
    )
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)


class OwnedAccountRecord(Timestamped, Base):
    __tablename__ = "ledger_owned_account"

    account_mask: Mapped[str] = mapped_column(String(100), primary_key=True)
    bank: Mapped[str] = mapped_column(String(100))
    owner_name: Mapped[str] = mapped_column(String(200))


class OwnerAliasRecord(Timestamped, Base):
    __tablename__ = "ledger_owner_alias"

    alias: Mapped[str] = mapped_column(String(200), primary_key=True)


class QuickTemplateRecord(StringPrimaryKey, Timestamped, Base):
    __tablename__ = "ledger_quick_template"

    name: Mapped[str] = mapped_column(String(200))
    type: Mapped[EntryType] = mapped_column(Enum(EntryType, native_enum=False))
    amount: Mapped[int] = mapped_column(BigInteger)
    description: Mapped[str] = mapped_column(Text)
    merchant: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100))
    spending_kind: Mapped[SpendingKind] = mapped_column(Enum(SpendingKind, native_enum=False))
    repeat_monthly_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)


class InstallmentPlanRecord(StringPrimaryKey, Timestamped, Base):
    __tablename__ = "ledger_installment_plan"

    card_last4: Mapped[str] = mapped_column(String(4))
    merchant: Mapped[str] = mapped_column(Text)
    monthly_amount: Mapped[int] = mapped_column(BigInteger)
    total_months: Mapped[int] = mapped_column(Integer)
    start_year: Mapped[int] = mapped_column(Integer)
    start_month: Mapped[int] = mapped_column(Integer)
