"""Extract a signed amount from a short bank or card push notification.

A notification often carries several numbers (amount, balance, points,
card digits). Each number found next to a currency unit or a transaction
keyword becomes a candidate, scored by how it was found and by the words
around it; the best candidate wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from spend_ledger.modules.ledger.domain import ParsedRecord
from spend_ledger.modules.ledger.models import EntrySource

_AMOUNT = r"([+-]?\d[\d,]{0,14})"
_KEYWORDS = r"(결제|입금|출금|사용|승인|이체|송금|환급|급여|payment|paid|deposit|withdraw|transfer)"

# (pattern, amount group, base score)
_PATTERNS = (
    (re.compile(_AMOUNT + r"\s*(원|krw)", re.I), 1, 60),
    (re.compile(r"(원|krw)\s*" + _AMOUNT, re.I), 2, 60),
    (re.compile(_KEYWORDS + r"\D{0,8}" + _AMOUNT, re.I), 2, 40),
    (re.compile(_AMOUNT + r"\D{0,8}" + _KEYWORDS, re.I), 1, 40),
)

INCOME_HINTS = ("입금", "수입", "환급", "급여", "salary", "deposit", "refund")
EXPENSE_HINTS = ("결제", "승인", "출금", "사용", "purchase", "payment", "withdraw")
TRANSACTION_HINTS = (
    "결제", "승인", "입금", "출금", "이체", "송금", "환급", "급여",
    "payment", "deposit", "withdraw", "transfer", "purchase", "approved",
)
BOOST_HINTS = (
    "결제", "승인", "출금", "입금", "이체", "송금", "환급", "급여",
    "payment", "deposit", "withdraw", "transfer",
)
PENALTY_HINTS = (
    "잔액", "시도", "포인트", "적립", "쿠폰", "혜택", "광고", "이벤트",
    "balance", "point", "coupon", "promo", "event",
)

CONTEXT_RADIUS = 12
MAX_AMOUNT = 10_000_000_000


@dataclass(frozen=True)
class AmountCandidate:
    amount: int
    explicit_sign: int
    score: int


def _merge(title: str | None, text: str | None) -> str:
    return " ".join(part for part in (title, text) if part is not None).strip()


def _parse_amount_token(token: str) -> int | None:
    numeric = token.replace(",", "").strip()
    try:
        value = abs(int(numeric))
    except ValueError:
        return None
    return value if 0 < value < MAX_AMOUNT else None


def _explicit_sign(token: str) -> int:
    token = token.strip()
    if token.startswith("-"):
        return -1
    if token.startswith("+"):
        return 1
    return 0


def _score_context(text: str, start: int, end: int) -> int:
    context = text[max(0, start - CONTEXT_RADIUS) : end + CONTEXT_RADIUS].lower()
    boost = sum(1 for hint in BOOST_HINTS if hint in context)
    penalty = sum(1 for hint in PENALTY_HINTS if hint in context)
    return boost * 5 - penalty * 6


def extract_amount(text: str) -> AmountCandidate | None:
    candidates: list[AmountCandidate] = []
    for pattern, group, base in _PATTERNS:
        for m in pattern.finditer(text):
            token = m.group(group)
            amount = _parse_amount_token(token)
            if amount is None:
                continue
            candidates.append(
                AmountCandidate(
                    amount=amount,
                    explicit_sign=_explicit_sign(token),
                    score=base + _score_context(text, m.start(), m.end()),
                )
            )
    if not candidates:
        return None
    best = max(candidates, key=lambda c: (c.score, c.amount))
    return best if best.score > 0 else None


def looks_like_transaction(title: str | None, text: str | None) -> bool:
    merged = _merge(title, text)
    if not merged:
        return False
    lower = merged.lower()
    has_hint = any(hint in lower for hint in TRANSACTION_HINTS)
    if sum(1 for hint in PENALTY_HINTS if hint in lower) >= 2 and not has_hint:
        return False

    candidate = extract_amount(merged)
    if candidate is None:
        return False
    has_unit = "원" in lower or "krw" in lower
    return (has_hint or has_unit or candidate.explicit_sign != 0) and candidate.amount > 0


def parse(
    title: str | None, text: str | None, now: datetime | None = None
) -> ParsedRecord | None:
    if not looks_like_transaction(title, text):
        return None
    merged = _merge(title, text)
    candidate = extract_amount(merged)
    if candidate is None:
        return None

    lower = merged.lower()
    if candidate.explicit_sign < 0:
        signed = -candidate.amount
    elif candidate.explicit_sign > 0:
        signed = candidate.amount
    elif any(hint in lower for hint in INCOME_HINTS):
        signed = candidate.amount
    elif any(hint in lower for hint in EXPENSE_HINTS):
        signed = -candidate.amount
    else:
        signed = -candidate.amount

    return ParsedRecord(
        occurred_at=now or datetime.now(),
        signed_amount=signed,
        description=merged,
        merchant=title,
        source=EntrySource.NOTIFICATION,
        raw={"title": title or "", "text": text or ""},
    )
