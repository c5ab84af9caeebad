from __future__ import annotations

from datetime import datetime


def _record(**overrides):
    from spend_ledger.modules.ledger.domain import ParsedRecord
    from spend_ledger.modules.ledger.models import EntrySource

    values = {
        "occurred_at": datetime(2026, 2, 21, 10, 0),
        "signed_amount": -10_000,
        "description": "결제",
        "merchant": None,
        "source": EntrySource.EXCEL_IMPORT,
    }
    values.update(overrides)
    return ParsedRecord(**values)


def _classify_one(record, *, existing=(), owned_accounts=(), owner_aliases=(), rules=()):
    from spend_ledger.modules.classification.service import ClassificationEngine

    entries = ClassificationEngine().classify_records(
        [record], list(existing), list(owned_accounts), set(owner_aliases), rules
    )
    assert len(entries) == 1
    return entries[0]


def test_installment_fraction_in_raw_column_marks_installment():
    from spend_ledger.modules.ledger.models import SpendingKind

    entry = _classify_one(
        _record(
            occurred_at=datetime(2026, 2, 11),
            signed_amount=-536_800,
            description="(주)이니시스 - 애플코리아 유한회사 1,610,000",
            merchant="(주)이니시스 - 애플코리아 유한회사 1,610,000",
            raw={"할부/회차": "3/1"},
        )
    )

    assert entry.spending_kind == SpendingKind.INSTALLMENT
    assert entry.category == "할부"
    assert entry.amount == 536_800


def test_one_time_fraction_stays_normal():
    from spend_ledger.modules.ledger.models import SpendingKind

    entry = _classify_one(
        _record(description="일시불 결제", merchant="카카오", raw={"할부/회차": "1/1"})
    )

    assert entry.spending_kind == SpendingKind.NORMAL


def test_loan_keyword_marks_loan_repayment():
    from spend_ledger.modules.ledger.models import SpendingKind

    entry = _classify_one(_record(description="주택담보대출 원리금 상환"))

    assert entry.spending_kind == SpendingKind.LOAN
    assert entry.category == "대출상환"


def test_forced_expense_rule_overrides_inferred_type():
    from spend_ledger.modules.ledger.domain import ClassificationRule
    from spend_ledger.modules.ledger.models import EntryType, SpendingKind

    rule = ClassificationRule(
        keyword="토스 내 계좌 이체",
        spending_kind=SpendingKind.NORMAL,
        category="일반지출",
        forced_type=EntryType.EXPENSE,
    )

    entry = _classify_one(
        _record(signed_amount=25_000, description="토스 내 계좌 이체", merchant="토스"),
        rules=[rule],
    )

    assert entry.type == EntryType.EXPENSE
    assert entry.counted_in_expense is True
    assert entry.category == "일반지출"


def test_apply_rule_if_matched_changes_existing_transfer_to_expense():
    from spend_ledger.modules.classification.service import ClassificationEngine
    from spend_ledger.modules.ledger.domain import ClassificationRule, LedgerEntry
    from spend_ledger.modules.ledger.models import EntrySource, EntryType, SpendingKind

    entry = LedgerEntry(
        occurred_at=datetime(2026, 2, 21, 9, 0),
        amount=30_000,
        type=EntryType.TRANSFER,
        category="이체",
        description="토스 내 계좌 이체",
        merchant="토스",
        source=EntrySource.EXCEL_IMPORT,
    )
    rule = ClassificationRule(
        keyword="토스 내 계좌 이체",
        spending_kind=SpendingKind.NORMAL,
        category="일반지출",
        forced_type=EntryType.EXPENSE,
    )

    updated = ClassificationEngine().apply_rule_if_matched(entry, [rule])

    assert entry.counted_in_expense is False
    assert updated.type == EntryType.EXPENSE
    assert updated.category == "일반지출"
    assert updated.counted_in_expense is True
    assert updated.id == entry.id


def test_apply_rule_if_matched_returns_same_entry_without_match():
    from spend_ledger.modules.classification.service import ClassificationEngine
    from spend_ledger.modules.ledger.domain import ClassificationRule, LedgerEntry
    from spend_ledger.modules.ledger.models import EntrySource, EntryType, SpendingKind

    entry = LedgerEntry(
        occurred_at=datetime(2026, 2, 21, 9, 0),
        amount=5_000,
        type=EntryType.EXPENSE,
        category="식비",
        description="김밥천국",
        merchant=None,
        source=EntrySource.MANUAL,
    )
    rule = ClassificationRule(keyword="넷플릭스", spending_kind=SpendingKind.SUBSCRIPTION, category="")

    assert ClassificationEngine().apply_rule_if_matched(entry, [rule]) is entry


def test_rule_without_forced_type_leaves_income_untouched():
    from spend_ledger.modules.classification.service import ClassificationEngine
    from spend_ledger.modules.ledger.domain import ClassificationRule, LedgerEntry
    from spend_ledger.modules.ledger.models import EntrySource, EntryType, SpendingKind

    entry = LedgerEntry(
        occurred_at=datetime(2026, 2, 25, 9, 0),
        amount=1_200,
        type=EntryType.INCOME,
        category="기타수입",
        description="토스 이자 지급",
        merchant=None,
        source=EntrySource.NOTIFICATION,
    )
    plain = ClassificationRule(keyword="토스", spending_kind=SpendingKind.NORMAL, category="쇼핑")
    same_type = ClassificationRule(
        keyword="토스",
        spending_kind=SpendingKind.NORMAL,
        category="쇼핑",
        forced_type=EntryType.INCOME,
    )

    engine = ClassificationEngine()

    assert engine.apply_rule_if_matched(entry, [plain]) is entry
    assert engine.apply_rule_if_matched(entry, [same_type]) is entry


def test_rule_forcing_transfer_on_stored_expense_takes_default_category():
    from spend_ledger.modules.classification.service import ClassificationEngine
    from spend_ledger.modules.ledger.domain import ClassificationRule, LedgerEntry
    from spend_ledger.modules.ledger.models import EntrySource, EntryType, SpendingKind

    entry = LedgerEntry(
        occurred_at=datetime(2026, 2, 25, 9, 0),
        amount=300_000,
        type=EntryType.EXPENSE,
        category="기타지출",
        description="적금 자동이체",
        merchant=None,
        source=EntrySource.CSV_IMPORT,
    )
    rule = ClassificationRule(
        keyword="적금",
        spending_kind=SpendingKind.NORMAL,
        category="",
        forced_type=EntryType.TRANSFER,
    )

    updated = ClassificationEngine().apply_rule_if_matched(entry, [rule])

    assert updated.type == EntryType.TRANSFER
    assert updated.category == "내부계좌이체"
    assert updated.counted_in_expense is False


def test_rule_forcing_income_resets_spending_kind():
    from spend_ledger.modules.ledger.domain import ClassificationRule
    from spend_ledger.modules.ledger.models import EntryType, SpendingKind

    rule = ClassificationRule(
        keyword="중고거래",
        spending_kind=SpendingKind.INSTALLMENT,
        category="할부",
        forced_type=EntryType.INCOME,
    )

    entry = _classify_one(_record(description="중고거래 정산 12개월"), rules=[rule])

    assert entry.type == EntryType.INCOME
    assert entry.spending_kind == SpendingKind.NORMAL
    assert entry.counted_in_expense is False
    assert entry.category == "기타수입"


def test_longest_matching_rule_wins():
    from spend_ledger.modules.ledger.domain import ClassificationRule
    from spend_ledger.modules.ledger.models import SpendingKind

    rules = [
        ClassificationRule(keyword="쿠팡", spending_kind=SpendingKind.NORMAL, category="쇼핑"),
        ClassificationRule(
            keyword="쿠팡이츠", spending_kind=SpendingKind.NORMAL, category="배달음식"
        ),
        ClassificationRule(
            keyword="쿠팡이츠 서울",
            spending_kind=SpendingKind.NORMAL,
            category="비활성",
            enabled=False,
        ),
    ]

    entry = _classify_one(_record(description="쿠팡이츠 서울 주문"), rules=rules)

    assert entry.category == "배달음식"


def test_category_is_reused_from_recent_history_when_merchant_matches():
    from spend_ledger.modules.ledger.domain import LedgerEntry
    from spend_ledger.modules.ledger.models import EntrySource, EntryType

    existing = [
        LedgerEntry(
            occurred_at=datetime(2026, 2, 19, 9, 0),
            amount=12_000,
            type=EntryType.EXPENSE,
            category="생활기타",
            description="MCS 정기 결제",
            merchant="MCS-PAY",
            source=EntrySource.EXCEL_IMPORT,
        )
    ]

    entry = _classify_one(
        _record(signed_amount=-15_000, description="MCS 결제", merchant="MCS-PAY"),
        existing=existing,
    )

    assert entry.category == "생활기타"


def test_history_learns_within_the_same_batch():
    from spend_ledger.modules.classification.service import ClassificationEngine
    from spend_ledger.modules.ledger.domain import ClassificationRule
    from spend_ledger.modules.ledger.models import SpendingKind

    rule = ClassificationRule(keyword="정기결제", spending_kind=SpendingKind.NORMAL, category="운동")
    records = [
        _record(description="헬스장 정기결제", merchant="바디핏"),
        _record(description="헬스장 PT", merchant="바디핏"),
    ]

    entries = ClassificationEngine().classify_records(records, [], [], set(), [rule])

    assert [e.category for e in entries] == ["운동", "운동"]


def test_income_and_keyword_fallbacks():
    entry_income = _classify_one(_record(signed_amount=3_000_000, description="2월 급여"))
    entry_other_income = _classify_one(_record(signed_amount=500, description="캐시백"))
    entry_keyword = _classify_one(_record(description="GS25 편의점"))
    entry_fallback = _classify_one(_record(description="알 수 없는 가맹점"))

    assert entry_income.category == "급여/입금"
    assert entry_other_income.category == "기타수입"
    assert entry_keyword.category == "식비"
    assert entry_fallback.category == "기타지출"


def test_transfer_between_owned_accounts():
    from spend_ledger.modules.ledger.domain import OwnedAccount
    from spend_ledger.modules.ledger.models import EntryType, SpendingKind

    owned = [
        OwnedAccount(bank="카카오뱅크", account_mask="3333-01-1234567", owner_name="홍길동"),
        OwnedAccount(bank="토스뱅크", account_mask="1000-1234-5678", owner_name="홍길동"),
    ]

    entry = _classify_one(
        _record(
            signed_amount=-200_000,
            description="자동이체",
            from_account_mask="3333011234567",
            to_account_mask="1000-1234-5678",
        ),
        owned_accounts=owned,
    )

    assert entry.type == EntryType.TRANSFER
    assert entry.category == "내부계좌이체"
    assert entry.spending_kind == SpendingKind.NORMAL
    assert entry.counted_in_expense is False


def test_transfer_detected_from_owner_alias_in_description():
    from spend_ledger.modules.classification.transfer import InternalTransferDetector

    detector = InternalTransferDetector()

    assert detector.is_internal_transfer(
        _record(description="오픈뱅킹 이체 토뱅 김도현"), [], {"김도현"}
    )
    assert not detector.is_internal_transfer(_record(description="토뱅 김도현"), [], {"김도현"})
    assert not detector.is_internal_transfer(
        _record(description="오픈뱅킹 이체 이순신"), [], {"김도현"}
    )


def test_transfer_detected_from_own_account_and_counterparty_alias():
    from spend_ledger.modules.classification.transfer import InternalTransferDetector
    from spend_ledger.modules.ledger.domain import OwnedAccount

    owned = [OwnedAccount(bank="신한", account_mask="110-***-1234", owner_name="Kim Dohyun")]
    record = _record(
        description="인터넷 송금",
        account_mask="110***1234",
        counterparty_name="kim-dohyun",
    )

    assert InternalTransferDetector().is_internal_transfer(record, owned, set())


def test_monthly_charges_become_subscriptions():
    from spend_ledger.modules.ledger.domain import LedgerEntry
    from spend_ledger.modules.ledger.models import EntrySource, EntryType, SpendingKind

    existing = [
        LedgerEntry(
            occurred_at=datetime(2026, month, 5),
            amount=13_500,
            type=EntryType.EXPENSE,
            category="통신/구독",
            description="NETFLIX.COM",
            merchant="NETFLIX",
            source=EntrySource.EXCEL_IMPORT,
        )
        for month in (1, 2)
    ]

    entry = _classify_one(
        _record(
            occurred_at=datetime(2026, 3, 6),
            signed_amount=-13_500,
            description="NETFLIX.COM",
            merchant="Netflix",
        ),
        existing=existing,
    )

    assert entry.spending_kind == SpendingKind.SUBSCRIPTION
    assert entry.category == "구독"
