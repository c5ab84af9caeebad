"""Map an issuer-specific column map onto the ledger's semantic fields.

Column names vary wildly between banks and card issuers, so each semantic
field carries a priority-ordered alias list. Header keys and aliases are both
normalized (case, whitespace, punctuation, BOM, parenthesized currency units)
before the lookup, and the first alias present with a non-blank value wins.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime

from spend_ledger.core.resolve import first_resolved
from spend_ledger.modules.importer.normalize import (
    normalize_token,
    parse_amount,
    parse_date,
    parse_signed_amount,
)
from spend_ledger.modules.ledger.domain import UNCATEGORIZED_DESCRIPTION, ParsedRecord
from spend_ledger.modules.ledger.models import EntrySource

DATE_KEYS = (
    "date", "datetime", "transaction date", "거래일", "거래일자", "거래일시",
    "사용일", "이용일", "승인일", "승인일시", "결제일", "매입일", "일자", "날짜",
)
DESCRIPTION_KEYS = (
    "description", "memo", "merchant", "detail", "적요", "내용", "가맹점",
    "이용가맹점", "거래내용", "거래처", "사용처", "상호명", "상대명",
)
MERCHANT_KEYS = (
    "merchant", "payee", "가맹점", "가맹점명", "이용가맹점", "상호", "상호명", "사용처", "거래처",
)
AMOUNT_KEYS = (
    "amount", "total", "금액", "결제금액", "결제원금", "청구금액", "승인금액",
    "거래금액", "이용금액", "사용금액",
)
WITHDRAW_KEYS = (
    "withdraw", "withdrawal", "debit", "출금", "출금액", "지출", "결제원금",
    "결제금액", "청구금액", "승인금액", "이용금액", "사용금액",
)
DEPOSIT_KEYS = (
    "deposit", "credit", "입금", "입금액", "입금금액", "수입", "환급금액",
)
ACCOUNT_KEYS = (
    "account", "account no", "계좌", "계좌번호", "카드번호", "카드", "이용카드", "카드명",
)
FROM_KEYS = ("from account", "from", "출금계좌", "보낸계좌", "보낸쪽")
TO_KEYS = ("to account", "to", "입금계좌", "받는계좌", "받는쪽")
COUNTERPARTY_KEYS = (
    "counterparty", "name", "상대명", "거래상대", "예금주", "보낸분", "받는분", "수취인",
)

_UNIT_SUFFIX_RE = re.compile(r"\(\s*(원|krw|₩)\s*\)", re.I)

Lookup = Callable[[Mapping[str, str]], str | None]


def normalize_header_key(key: str) -> str:
    return normalize_token(_UNIT_SUFFIX_RE.sub("", key or ""))


def normalize_keys(row: Mapping[str, str]) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for key, value in row.items():
        nk = normalize_header_key(key)
        # Leftmost column wins when two headers collapse onto the same key.
        if nk and nk not in normalized:
            normalized[nk] = value if value is not None else ""
    return normalized


def _alias(key: str) -> Lookup:
    normalized_key = normalize_header_key(key)

    def resolve(row: Mapping[str, str]) -> str | None:
        value = row.get(normalized_key)
        if value is None or not value.strip():
            return None
        return value.strip()

    return resolve


def _aliases(keys: Sequence[str]) -> tuple[Lookup, ...]:
    return tuple(_alias(k) for k in keys)


_DATE = _aliases(DATE_KEYS)
_DESCRIPTION = _aliases(DESCRIPTION_KEYS)
_MERCHANT = _aliases(MERCHANT_KEYS)
_AMOUNT = _aliases(AMOUNT_KEYS)
_WITHDRAW = _aliases(WITHDRAW_KEYS)
_DEPOSIT = _aliases(DEPOSIT_KEYS)
_ACCOUNT = _aliases(ACCOUNT_KEYS)
_FROM = _aliases(FROM_KEYS)
_TO = _aliases(TO_KEYS)
_COUNTERPARTY = _aliases(COUNTERPARTY_KEYS)


def _withdrawal_amount(row: Mapping[str, str]) -> int | None:
    value = first_resolved(_WITHDRAW, row)
    amount = parse_amount(value) if value else 0
    return -amount if amount > 0 else None


def _deposit_amount(row: Mapping[str, str]) -> int | None:
    value = first_resolved(_DEPOSIT, row)
    amount = parse_amount(value) if value else 0
    return amount if amount > 0 else None


def _single_signed_amount(row: Mapping[str, str]) -> int | None:
    value = first_resolved(_AMOUNT, row)
    amount = parse_signed_amount(value) if value else 0
    return amount if amount != 0 else None


# Issuers either split debit/credit into two columns or report one signed column.
_SIGNED_AMOUNT = (_withdrawal_amount, _deposit_amount, _single_signed_amount)


def map_row(
    row: Mapping[str, str],
    source: EntrySource,
    reference: date | datetime | None = None,
) -> ParsedRecord | None:
    """Return a ParsedRecord, or ``None`` when the row does not describe a transaction."""
    normalized = normalize_keys(row)

    date_text = first_resolved(_DATE, normalized)
    if date_text is None:
        return None

    signed = first_resolved(_SIGNED_AMOUNT, normalized)
    if signed is None:
        return None

    occurred_at = parse_date(date_text, reference)
    if occurred_at is None:
        return None

    description = first_resolved(_DESCRIPTION, normalized)
    merchant = first_resolved(_MERCHANT, normalized) or description

    return ParsedRecord(
        occurred_at=occurred_at,
        signed_amount=signed,
        description=description or UNCATEGORIZED_DESCRIPTION,
        merchant=merchant,
        account_mask=first_resolved(_ACCOUNT, normalized),
        from_account_mask=first_resolved(_FROM, normalized),
        to_account_mask=first_resolved(_TO, normalized),
        counterparty_name=first_resolved(_COUNTERPARTY, normalized),
        source=source,
        raw={str(k): ("" if v is None else str(v)) for k, v in row.items()},
    )
