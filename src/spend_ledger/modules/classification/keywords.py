"""Keyword dictionaries and the spending-kind detector."""

from __future__ import annotations

import re
from collections.abc import Mapping

from spend_ledger.modules.importer.normalize import normalize_token
from spend_ledger.modules.ledger.models import EntryType, SpendingKind

CATEGORY_SALARY = "급여/입금"
CATEGORY_OTHER_INCOME = "기타수입"
CATEGORY_OTHER_EXPENSE = "기타지출"
CATEGORY_TRANSFER = "내부계좌이체"
CATEGORY_LOAN = "대출상환"
CATEGORY_INSTALLMENT = "할부"
CATEGORY_SUBSCRIPTION = "구독"

INCOME_KEYWORDS = ("급여", "월급", "상여", "환급", "입금", "salary", "deposit", "refund")

EXPENSE_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("식비", ("식당", "카페", "배달", "편의점", "레스토랑")),
    ("교통", ("지하철", "버스", "택시", "주유", "통행료")),
    ("쇼핑", ("쿠팡", "네이버", "마켓", "스토어", "shopping")),
    ("통신/구독", ("통신", "netflix", "youtube", "spotify", "구독", "멤버십")),
    ("주거/공과금", ("관리비", "전기", "가스", "수도", "월세")),
    ("금융", ("수수료", "이자", "보험")),
)

INSTALLMENT_KEYWORDS = ("할부", "부분무이자", "무이자", "개월")
LOAN_KEYWORDS = (
    "대출", "원리금", "이자", "카드론", "현금서비스", "리볼빙", "loan", "mortgage", "interest",
)
ONE_TIME_KEYWORDS = ("일시불", "single payment")

# Raw columns whose values carry installment progress ("3/12", "12개월").
INSTALLMENT_COLUMN_TOKENS = ("할부", "회차", "installment", "개월")

_FRACTION_RE = re.compile(r"(\d{1,2})\s*/\s*(\d{1,2})")
_MONTHS_RE = re.compile(r"(\d{1,2})\s*(개월|할부)")

# Categories implied by the spending kind or the generic fallback; history
# never learns these.
GENERIC_CATEGORIES = frozenset(
    {
        CATEGORY_OTHER_EXPENSE,
        CATEGORY_TRANSFER,
        CATEGORY_LOAN,
        CATEGORY_INSTALLMENT,
        CATEGORY_SUBSCRIPTION,
        CATEGORY_SALARY,
        CATEGORY_OTHER_INCOME,
    }
)


def detect_income_category(description: str) -> str:
    lower = description.lower()
    if any(k in lower for k in INCOME_KEYWORDS):
        return CATEGORY_SALARY
    return CATEGORY_OTHER_INCOME


def keyword_expense_category(description: str, merchant: str | None = None) -> str | None:
    text = f"{description} {merchant or ''}".lower()
    for category, keywords in EXPENSE_CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return None


def default_category_for(kind: SpendingKind, type: EntryType) -> str:
    if type == EntryType.INCOME:
        return CATEGORY_SALARY
    if type == EntryType.TRANSFER:
        return CATEGORY_TRANSFER
    if kind == SpendingKind.SUBSCRIPTION:
        return CATEGORY_SUBSCRIPTION
    if kind == SpendingKind.INSTALLMENT:
        return CATEGORY_INSTALLMENT
    if kind == SpendingKind.LOAN:
        return CATEGORY_LOAN
    return CATEGORY_OTHER_EXPENSE


def installment_column_values(raw: Mapping[str, str]) -> list[str]:
    values = []
    for key, value in raw.items():
        normalized = normalize_token(key)
        if value and any(token in normalized for token in INSTALLMENT_COLUMN_TOKENS):
            values.append(str(value))
    return values


def _has_installment_fraction(values: list[str]) -> bool:
    for value in values:
        for m in _FRACTION_RE.finditer(value):
            first, second = int(m.group(1)), int(m.group(2))
            if 1 <= first <= 99 and 1 <= second <= 99 and max(first, second) >= 2:
                return True
    return False


def detect_spending_kind(
    description: str, merchant: str | None, raw: Mapping[str, str] | None = None
) -> SpendingKind:
    column_values = installment_column_values(raw or {})
    text = " ".join([description, merchant or "", *column_values]).lower()

    if any(k in text for k in LOAN_KEYWORDS):
        return SpendingKind.LOAN
    if any(k in text for k in ONE_TIME_KEYWORDS):
        return SpendingKind.NORMAL
    if any(k in text for k in INSTALLMENT_KEYWORDS):
        return SpendingKind.INSTALLMENT
    if _has_installment_fraction(column_values):
        return SpendingKind.INSTALLMENT
    if _MONTHS_RE.search(text):
        return SpendingKind.INSTALLMENT
    return SpendingKind.NORMAL
