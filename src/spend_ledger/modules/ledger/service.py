from __future__ import annotations

import calendar
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spend_ledger.core.config import settings
from spend_ledger.core.logging import get_logger, log_event, log_exception, monotonic_ms
from spend_ledger.modules.classification.keywords import default_category_for
from spend_ledger.modules.classification.service import ClassificationEngine
from spend_ledger.modules.importer.service import StatementImporter
from spend_ledger.modules.ledger.domain import (
    ClassificationRule,
    LedgerEntry,
    OwnedAccount,
    ParsedRecord,
    QuickTemplate,
)
from spend_ledger.modules.ledger.fingerprint import (
    dedupe_entries,
    entry_fingerprint,
    manual_fingerprint,
    recurring_entry_id,
    recurring_fingerprint,
)
from spend_ledger.modules.ledger.installments import (
    InstallmentPlan,
    InstallmentWarning,
    projected_warnings,
)
from spend_ledger.modules.ledger.models import (
    ClassificationRuleRecord,
    EntrySource,
    EntryType,
    InstallmentPlanRecord,
    LedgerEntryRecord,
    OwnedAccountRecord,
    OwnerAliasRecord,
    QuickTemplateRecord,
    SpendingKind,
)
from spend_ledger.modules.ledger.schemas import (
    ClassificationRuleIn,
    EntryUpdateIn,
    InstallmentPlanIn,
    ManualEntryIn,
    OwnedAccountIn,
    QuickTemplateIn,
)

logger = get_logger(__name__)


class EntryNotFoundError(LookupError):
    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"Ledger entry not found: {entry_id}")


@dataclass(frozen=True)
class IngestSummary:
    received: int
    inserted: int
    duplicates: int
    skipped_rows: int = 0
    entries: tuple[LedgerEntry, ...] = ()


# Record <-> domain conversion


def _entry_from_record(record: LedgerEntryRecord) -> LedgerEntry:
    type = EntryType.parse(record.type)
    return LedgerEntry(
        id=record.id,
        occurred_at=record.occurred_at,
        amount=record.amount,
        type=type,
        category=record.category,
        description=record.description,
        merchant=record.merchant,
        source=EntrySource.parse(record.source),
        spending_kind=SpendingKind.parse(record.spending_kind),
        counted_in_expense=type == EntryType.EXPENSE,
        account_mask=record.account_mask,
        counterparty_name=record.counterparty_name,
    )


def _record_from_entry(entry: LedgerEntry, fingerprint: str) -> LedgerEntryRecord:
    return LedgerEntryRecord(
        id=entry.id,
        fingerprint=fingerprint,
        occurred_at=entry.occurred_at,
        amount=entry.amount,
        type=entry.type.value,
        category=entry.category,
        description=entry.description,
        merchant=entry.merchant,
        source=entry.source.value,
        spending_kind=entry.spending_kind.value,
        counted_in_expense=entry.type == EntryType.EXPENSE,
        account_mask=entry.account_mask,
        counterparty_name=entry.counterparty_name,
    )


def _copy_entry_fields(record: LedgerEntryRecord, entry: LedgerEntry) -> None:
    record.type = entry.type.value
    record.amount = entry.amount
    record.category = entry.category
    record.description = entry.description
    record.merchant = entry.merchant
    record.spending_kind = entry.spending_kind.value
    record.counted_in_expense = entry.type == EntryType.EXPENSE


def _rule_from_record(record: ClassificationRuleRecord) -> ClassificationRule:
    return ClassificationRule(
        id=record.id,
        keyword=record.keyword,
        spending_kind=record.spending_kind,
        category=record.category,
        forced_type=record.forced_type,
        enabled=record.enabled,
        created_at=record.created_at,
    )


def _template_from_record(record: QuickTemplateRecord) -> QuickTemplate:
    return QuickTemplate(
        id=record.id,
        name=record.name,
        type=record.type,
        amount=record.amount,
        description=record.description,
        merchant=record.merchant,
        category=record.category,
        spending_kind=record.spending_kind,
        repeat_monthly_day=record.repeat_monthly_day,
        enabled=record.enabled,
    )


def _plan_from_record(record: InstallmentPlanRecord) -> InstallmentPlan:
    return InstallmentPlan(
        id=record.id,
        card_last4=record.card_last4,
        merchant=record.merchant,
        monthly_amount=record.monthly_amount,
        total_months=record.total_months,
        start_year=record.start_year,
        start_month=record.start_month,
    )


def _insert_if_absent(session: Session, record: LedgerEntryRecord) -> bool:
    try:
        with session.begin_nested():
            session.add(record)
            session.flush()
    except IntegrityError:
        return False
    return True


def _fingerprint_taken(session: Session, fingerprint: str, *, exclude_id: str) -> bool:
    return (
        session.scalar(
            select(LedgerEntryRecord.id).where(
                LedgerEntryRecord.fingerprint == fingerprint,
                LedgerEntryRecord.id != exclude_id,
            )
        )
        is not None
    )


def _is_pinned_fingerprint(fingerprint: str) -> bool:
    # Manual and template-generated rows keep their own identity across edits.
    return fingerprint.startswith("recurring|") or "|manual|" in fingerprint


# Reference data


def load_recent_entries(session: Session, limit: int | None = None) -> list[LedgerEntry]:
    limit = limit if limit is not None else settings.recent_history_limit
    records = session.scalars(
        select(LedgerEntryRecord).order_by(LedgerEntryRecord.occurred_at.desc()).limit(limit)
    )
    return [_entry_from_record(r) for r in records]


def load_owned_accounts(session: Session) -> list[OwnedAccount]:
    return [
        OwnedAccount(bank=r.bank, account_mask=r.account_mask, owner_name=r.owner_name)
        for r in session.scalars(select(OwnedAccountRecord))
    ]


def load_owner_aliases(session: Session) -> set[str]:
    return set(session.scalars(select(OwnerAliasRecord.alias)))


def register_owned_account(session: Session, data: OwnedAccountIn) -> OwnedAccount:
    record = session.get(OwnedAccountRecord, data.account_mask)
    if record is None:
        record = OwnedAccountRecord(account_mask=data.account_mask)
    record.bank = data.bank
    record.owner_name = data.owner_name
    session.add(record)
    session.flush()
    add_owner_alias(session, data.owner_name)
    return OwnedAccount(bank=data.bank, account_mask=data.account_mask, owner_name=data.owner_name)


def add_owner_alias(session: Session, alias: str) -> bool:
    alias = (alias or "").strip()
    if not alias:
        return False
    if session.get(OwnerAliasRecord, alias) is None:
        session.add(OwnerAliasRecord(alias=alias))
    session.commit()
    return True


# Ingestion


def ingest_parsed_records(
    session: Session,
    records: Sequence[ParsedRecord],
    *,
    engine: ClassificationEngine | None = None,
    skipped_rows: int = 0,
) -> IngestSummary:
    """Classify parsed records against stored context and insert the new ones."""
    if not records:
        return IngestSummary(received=0, inserted=0, duplicates=0, skipped_rows=skipped_rows)

    start = time.monotonic()
    engine = engine or ClassificationEngine()
    try:
        existing = load_recent_entries(session)
        classified = engine.classify_records(
            records,
            existing,
            load_owned_accounts(session),
            load_owner_aliases(session),
            list_classification_rules(session),
        )

        known = set(
            session.scalars(
                select(LedgerEntryRecord.fingerprint).where(
                    LedgerEntryRecord.fingerprint.in_({entry_fingerprint(e) for e in classified})
                )
            )
        )
        inserted: list[LedgerEntry] = []
        for fingerprint, entry in dedupe_entries(classified, known):
            if _insert_if_absent(session, _record_from_entry(entry, fingerprint)):
                inserted.append(entry)
        session.commit()
    except Exception:
        session.rollback()
        log_exception(logger, "ledger.ingest.failed", records=len(records))
        raise

    summary = IngestSummary(
        received=len(records),
        inserted=len(inserted),
        duplicates=len(records) - len(inserted),
        skipped_rows=skipped_rows,
        entries=tuple(inserted),
    )
    log_event(
        logger,
        "ledger.ingest.finish",
        received=summary.received,
        inserted=summary.inserted,
        duplicates=summary.duplicates,
        skipped_rows=summary.skipped_rows,
        duration_ms=monotonic_ms(start),
    )
    return summary


def ingest_notification(session: Session, record: ParsedRecord) -> IngestSummary:
    return ingest_parsed_records(session, [replace(record, source=EntrySource.NOTIFICATION)])


def import_statement(
    session: Session,
    body: bytes,
    filename: str,
    content_type: str | None = None,
    *,
    importer: StatementImporter | None = None,
    reference: date | datetime | None = None,
) -> IngestSummary:
    result = (importer or StatementImporter()).import_statement(
        body, filename, content_type, reference=reference
    )
    return ingest_parsed_records(session, result.records, skipped_rows=result.skipped_rows)


# Manual entries


def add_manual_entry(session: Session, data: ManualEntryIn) -> LedgerEntry:
    kind = data.spending_kind if data.type == EntryType.EXPENSE else SpendingKind.NORMAL
    entry = LedgerEntry(
        occurred_at=data.occurred_at,
        amount=data.amount,
        type=data.type,
        category=data.category or default_category_for(kind, data.type),
        description=data.description,
        merchant=data.merchant,
        source=EntrySource.MANUAL,
        spending_kind=kind,
        account_mask=data.account_mask,
        counterparty_name=data.counterparty_name,
    ).normalized()
    session.add(_record_from_entry(entry, manual_fingerprint(entry)))
    session.commit()
    log_event(logger, "ledger.entry.created", entry_id=entry.id, type=entry.type.value)
    return entry


def update_entry(session: Session, entry_id: str, data: EntryUpdateIn) -> LedgerEntry:
    record = session.get(LedgerEntryRecord, entry_id)
    if record is None:
        raise EntryNotFoundError(entry_id)

    kind = data.spending_kind if data.type == EntryType.EXPENSE else SpendingKind.NORMAL
    updated = replace(
        _entry_from_record(record),
        type=data.type,
        amount=data.amount,
        description=data.description,
        category=data.category or default_category_for(kind, data.type),
        merchant=data.merchant,
        spending_kind=kind,
    ).normalized()
    _save_entry(session, record, updated)
    session.commit()
    log_event(logger, "ledger.entry.updated", entry_id=entry_id)
    return updated


def _save_entry(session: Session, record: LedgerEntryRecord, entry: LedgerEntry) -> None:
    _copy_entry_fields(record, entry)
    if not _is_pinned_fingerprint(record.fingerprint):
        fingerprint = entry_fingerprint(entry)
        if fingerprint != record.fingerprint and not _fingerprint_taken(
            session, fingerprint, exclude_id=record.id
        ):
            record.fingerprint = fingerprint
    session.add(record)


def delete_entry(session: Session, entry_id: str) -> bool:
    if not (entry_id or "").strip():
        return False
    result = session.execute(delete(LedgerEntryRecord).where(LedgerEntryRecord.id == entry_id))
    session.commit()
    return bool(result.rowcount)


def list_entries(
    session: Session,
    *,
    year: int | None = None,
    month: int | None = None,
    limit: int | None = None,
) -> list[LedgerEntry]:
    stmt = select(LedgerEntryRecord).order_by(LedgerEntryRecord.occurred_at.desc())
    if year is not None and month is not None:
        last_day = calendar.monthrange(year, month)[1]
        stmt = stmt.where(
            LedgerEntryRecord.occurred_at >= datetime(year, month, 1),
            LedgerEntryRecord.occurred_at <= datetime(year, month, last_day, 23, 59, 59, 999999),
        )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [_entry_from_record(r) for r in session.scalars(stmt)]


# Classification rules


def list_classification_rules(session: Session) -> list[ClassificationRule]:
    records = session.scalars(
        select(ClassificationRuleRecord).order_by(ClassificationRuleRecord.created_at)
    )
    return [_rule_from_record(r) for r in records]


def upsert_classification_rule(session: Session, data: ClassificationRuleIn) -> ClassificationRule:
    """Create or replace the rule for a keyword, then re-apply all rules to stored entries."""
    record = session.scalar(
        select(ClassificationRuleRecord).where(ClassificationRuleRecord.keyword == data.keyword)
    )
    if record is None:
        record = ClassificationRuleRecord(keyword=data.keyword)
    record.spending_kind = data.spending_kind
    record.category = data.category or default_category_for(data.spending_kind, EntryType.EXPENSE)
    record.forced_type = data.forced_type
    record.enabled = data.enabled
    session.add(record)
    session.commit()
    session.refresh(record)

    apply_classification_rules_to_existing_entries(session)
    return _rule_from_record(record)


def delete_classification_rule(session: Session, rule_id: str) -> bool:
    if not (rule_id or "").strip():
        return False
    result = session.execute(
        delete(ClassificationRuleRecord).where(ClassificationRuleRecord.id == rule_id)
    )
    session.commit()
    return bool(result.rowcount)


def apply_classification_rules_to_existing_entries(
    session: Session, *, engine: ClassificationEngine | None = None
) -> int:
    rules = list_classification_rules(session)
    if not rules:
        return 0

    start = time.monotonic()
    engine = engine or ClassificationEngine()
    updated_count = 0
    for record in session.scalars(select(LedgerEntryRecord)).all():
        entry = _entry_from_record(record)
        updated = engine.apply_rule_if_matched(entry, rules)
        if updated is entry:
            continue
        _save_entry(session, record, updated)
        updated_count += 1
    session.commit()

    log_event(
        logger,
        "ledger.rule.reapply",
        rules=len(rules),
        updated=updated_count,
        duration_ms=monotonic_ms(start),
    )
    return updated_count


# Quick templates


def add_quick_template(session: Session, data: QuickTemplateIn) -> QuickTemplate:
    kind = data.spending_kind if data.type == EntryType.EXPENSE else SpendingKind.NORMAL
    record = QuickTemplateRecord(
        name=data.name,
        type=data.type,
        amount=data.amount,
        description=data.description,
        merchant=data.merchant,
        category=data.category or default_category_for(kind, data.type),
        spending_kind=kind,
        repeat_monthly_day=data.repeat_monthly_day,
        enabled=True,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return _template_from_record(record)


def delete_quick_template(session: Session, template_id: str) -> bool:
    result = session.execute(
        delete(QuickTemplateRecord).where(QuickTemplateRecord.id == template_id)
    )
    session.commit()
    return bool(result.rowcount)


def _template_entry(
    template: QuickTemplate, occurred_at: datetime, *, entry_id: str | None = None
) -> LedgerEntry:
    return LedgerEntry(
        id=entry_id or str(uuid.uuid4()),
        occurred_at=occurred_at,
        amount=template.amount,
        type=template.type,
        category=template.category,
        description=template.description,
        merchant=template.merchant,
        source=EntrySource.MANUAL,
        spending_kind=template.spending_kind,
    ).normalized()


def run_quick_template_now(
    session: Session, template_id: str, occurred_at: datetime | None = None
) -> LedgerEntry | None:
    record = session.get(QuickTemplateRecord, template_id)
    if record is None or not record.enabled:
        return None
    entry = _template_entry(_template_from_record(record), occurred_at or datetime.now())
    session.add(_record_from_entry(entry, manual_fingerprint(entry)))
    session.commit()
    return entry


def materialize_recurring_templates(session: Session, year: int, month: int) -> int:
    """Create this month's entry for every enabled monthly template; safe to re-run."""
    templates = [
        _template_from_record(r)
        for r in session.scalars(
            select(QuickTemplateRecord).where(
                QuickTemplateRecord.enabled.is_(True),
                QuickTemplateRecord.repeat_monthly_day.is_not(None),
            )
        )
    ]
    last_day = calendar.monthrange(year, month)[1]
    inserted = 0
    for template in templates:
        day = min(max(template.repeat_monthly_day or 1, 1), last_day)
        entry = _template_entry(
            template,
            datetime(year, month, day),
            entry_id=recurring_entry_id(template.id, year, month, day),
        )
        fingerprint = recurring_fingerprint(
            template_id=template.id,
            year=year,
            month=month,
            day=day,
            type=template.type,
            amount=template.amount,
        )
        if session.get(LedgerEntryRecord, entry.id) is not None:
            continue
        if _insert_if_absent(session, _record_from_entry(entry, fingerprint)):
            inserted += 1
    session.commit()

    log_event(
        logger,
        "ledger.recurring.materialized",
        year=year,
        month=month,
        templates=len(templates),
        inserted=inserted,
    )
    return inserted


# Installment plans


def register_installment_plan(session: Session, data: InstallmentPlanIn) -> InstallmentPlan:
    record = session.get(InstallmentPlanRecord, data.id) if data.id else None
    if record is None:
        record = InstallmentPlanRecord(id=data.id or str(uuid.uuid4()))
    record.card_last4 = data.card_last4
    record.merchant = data.merchant
    record.monthly_amount = data.monthly_amount
    record.total_months = data.total_months
    record.start_year = data.start_year
    record.start_month = data.start_month
    session.add(record)
    session.commit()
    return _plan_from_record(record)


def list_installment_plans(session: Session) -> list[InstallmentPlan]:
    return [_plan_from_record(r) for r in session.scalars(select(InstallmentPlanRecord))]


def projected_installment_warnings(
    session: Session, year: int, month: int
) -> list[InstallmentWarning]:
    return projected_warnings(list_installment_plans(session), year, month)
