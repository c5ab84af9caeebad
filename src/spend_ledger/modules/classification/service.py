from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from spend_ledger.core.logging import get_logger, log_event
from spend_ledger.core.resolve import first_resolved
from spend_ledger.modules.classification.history import CategoryHistory
from spend_ledger.modules.classification.keywords import (
    CATEGORY_OTHER_EXPENSE,
    CATEGORY_SUBSCRIPTION,
    default_category_for,
    detect_income_category,
    detect_spending_kind,
    keyword_expense_category,
)
from spend_ledger.modules.classification.subscriptions import (
    detect_subscription_keys,
    subscription_key,
)
from spend_ledger.modules.classification.transfer import InternalTransferDetector
from spend_ledger.modules.ledger.domain import (
    ClassificationRule,
    LedgerEntry,
    OwnedAccount,
    ParsedRecord,
)
from spend_ledger.modules.ledger.models import EntryType, SpendingKind

logger = get_logger(__name__)


def active_rules(rules: Iterable[ClassificationRule]) -> list[ClassificationRule]:
    """Enabled rules with a keyword, most specific (longest keyword) first."""
    usable = [r for r in rules if r.enabled and r.keyword.strip()]
    return sorted(usable, key=lambda r: len(r.keyword.strip()), reverse=True)


def match_rule(
    description: str, merchant: str | None, rules: Sequence[ClassificationRule]
) -> ClassificationRule | None:
    if not rules:
        return None
    text = f"{description.lower()} {(merchant or '').lower()}"
    for rule in rules:
        keyword = rule.keyword.strip().lower()
        if keyword and keyword in text:
            return rule
    return None


@dataclass(frozen=True)
class _CategoryContext:
    type: EntryType
    kind: SpendingKind
    description: str
    merchant: str | None
    rule: ClassificationRule | None
    history: CategoryHistory


def _rule_category(ctx: _CategoryContext) -> str | None:
    if ctx.rule is None or ctx.type != EntryType.EXPENSE:
        return None
    return ctx.rule.category.strip() or None


def _transfer_category(ctx: _CategoryContext) -> str | None:
    return default_category_for(ctx.kind, ctx.type) if ctx.type == EntryType.TRANSFER else None


def _income_category(ctx: _CategoryContext) -> str | None:
    return detect_income_category(ctx.description) if ctx.type == EntryType.INCOME else None


def _kind_category(ctx: _CategoryContext) -> str | None:
    if ctx.kind == SpendingKind.NORMAL:
        return None
    return default_category_for(ctx.kind, ctx.type)


def _history_category(ctx: _CategoryContext) -> str | None:
    return ctx.history.recommend(ctx.description, ctx.merchant)


def _keyword_category(ctx: _CategoryContext) -> str | None:
    return keyword_expense_category(ctx.description, ctx.merchant)


CATEGORY_RESOLVERS = (
    _rule_category,
    _transfer_category,
    _income_category,
    _kind_category,
    _history_category,
    _keyword_category,
)


class ClassificationEngine:
    def __init__(self, transfer_detector: InternalTransferDetector | None = None) -> None:
        self.transfer_detector = transfer_detector or InternalTransferDetector()

    def classify_records(
        self,
        records: Sequence[ParsedRecord],
        existing: Sequence[LedgerEntry],
        owned_accounts: Sequence[OwnedAccount],
        owner_aliases: Iterable[str],
        rules: Iterable[ClassificationRule] = (),
    ) -> list[LedgerEntry]:
        """Turn parsed records into ledger entries, preserving input order."""
        aliases = set(owner_aliases)
        ordered_rules = active_rules(rules)
        history = CategoryHistory.from_entries(existing)

        first_pass: list[LedgerEntry] = []
        for record in records:
            entry = self._classify(record, owned_accounts, aliases, ordered_rules, history)
            history.remember(entry)
            first_pass.append(entry)

        subscription_keys = detect_subscription_keys([*existing, *first_pass])
        result = [
            replace(entry, spending_kind=SpendingKind.SUBSCRIPTION, category=CATEGORY_SUBSCRIPTION)
            if entry.type == EntryType.EXPENSE
            and entry.spending_kind == SpendingKind.NORMAL
            and subscription_key(entry) in subscription_keys
            else entry
            for entry in first_pass
        ]

        log_event(
            logger,
            "classification.finish",
            level=logging.DEBUG,
            records=len(result),
            existing=len(existing),
            rules=len(ordered_rules),
            subscription_groups=len(subscription_keys),
        )
        return result

    def _classify(
        self,
        record: ParsedRecord,
        owned_accounts: Sequence[OwnedAccount],
        owner_aliases: set[str],
        rules: Sequence[ClassificationRule],
        history: CategoryHistory,
    ) -> LedgerEntry:
        if self.transfer_detector.is_internal_transfer(record, owned_accounts, owner_aliases):
            inferred = EntryType.TRANSFER
        elif record.signed_amount < 0:
            inferred = EntryType.EXPENSE
        else:
            inferred = EntryType.INCOME

        rule = match_rule(record.description, record.merchant, rules)
        type = rule.forced_type if rule is not None and rule.forced_type is not None else inferred

        if type != EntryType.EXPENSE:
            kind = SpendingKind.NORMAL
        elif rule is not None:
            kind = rule.spending_kind
        else:
            kind = detect_spending_kind(record.description, record.merchant, record.raw)

        ctx = _CategoryContext(
            type=type,
            kind=kind,
            description=record.description,
            merchant=record.merchant,
            rule=rule,
            history=history,
        )
        category = first_resolved(CATEGORY_RESOLVERS, ctx) or CATEGORY_OTHER_EXPENSE

        return LedgerEntry(
            occurred_at=record.occurred_at,
            amount=abs(record.signed_amount),
            type=type,
            category=category,
            description=record.description,
            merchant=record.merchant,
            source=record.source,
            spending_kind=kind,
            counted_in_expense=type == EntryType.EXPENSE,
            account_mask=record.account_mask,
            counterparty_name=record.counterparty_name,
        )

    def apply_rule_if_matched(
        self, entry: LedgerEntry, rules: Iterable[ClassificationRule]
    ) -> LedgerEntry:
        """Re-apply rules to a stored entry; the entry comes back unchanged when none match."""
        rule = match_rule(entry.description, entry.merchant, active_rules(rules))
        if rule is None:
            return entry

        type = rule.forced_type or entry.type
        if type != EntryType.EXPENSE and type == entry.type:
            return entry
        if type == EntryType.EXPENSE:
            kind = rule.spending_kind
            category = rule.category.strip() or default_category_for(kind, type)
        else:
            kind = SpendingKind.NORMAL
            category = default_category_for(kind, type)

        updated = replace(
            entry,
            type=type,
            spending_kind=kind,
            category=category,
            counted_in_expense=type == EntryType.EXPENSE,
        )
        return entry if updated == entry else updated
