"""Locale-tolerant amount and date parsing shared by every parser.

Neither helper raises on bad input: ``parse_signed_amount`` signals "no amount"
with ``0`` and ``parse_date`` with ``None``. Callers drop the row in both cases.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta

from spend_ledger.core.config import settings

_CURRENCY_RE = re.compile(r"(₩|\$|원|krw|usd)", re.I)
_WS_RE = re.compile(r"\s+")
_FRACTION_RE = re.compile(r"\.\d*$")

_TOKEN_STRIP_RE = re.compile(r"[\ufeff\s_\-/.:()\[\]]")

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y%m%d %H:%M:%S",
    "%Y%m%d %H:%M",
    "%y-%m-%d %H:%M:%S",
    "%y-%m-%d %H:%M",
)
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y%m%d",
    "%y-%m-%d",
)
_MONTH_DAY_RE = re.compile(r"^(\d{1,2})-(\d{1,2})$")


def normalize_token(value: str | None) -> str:
    return _TOKEN_STRIP_RE.sub("", (value or "").strip().lower())


def parse_signed_amount(text: str | None) -> int:
    if text is None:
        return 0
    cleaned = _CURRENCY_RE.sub("", str(text).strip())
    cleaned = _WS_RE.sub("", cleaned.replace(",", ""))
    if not cleaned:
        return 0

    parenthesized = cleaned.startswith("(") and cleaned.endswith(")")
    negative = parenthesized or cleaned.startswith("-") or cleaned.endswith("-")

    body = cleaned.strip("()+-")
    body = _FRACTION_RE.sub("", body)
    digits = "".join(ch for ch in body if ch.isdigit())
    if not digits:
        return 0
    value = int(digits)
    return -value if negative else value


def parse_amount(text: str | None) -> int:
    return abs(parse_signed_amount(text))


def _normalize_date_text(text: str) -> str:
    s = text.strip()
    s = s.replace("년", "-").replace("월", "-").replace("일", "")
    s = s.replace("/", "-").replace(".", "-")
    s = re.sub(r"\s*-\s*", "-", s)
    s = _WS_RE.sub(" ", s).strip()
    return s.strip("-")


def _as_date(reference: date | datetime | None) -> date:
    if reference is None:
        return date.today()
    if isinstance(reference, datetime):
        return reference.date()
    return reference


def infer_year(month: int, day: int, reference: date | datetime | None = None) -> date | None:
    """Pick the year that puts ``month``/``day`` inside the statement window.

    Statements without a year are assumed to cover at most
    ``year_forward_days`` after and ``year_backward_days`` before the reference.
    """
    ref = _as_date(reference)
    earliest = ref - timedelta(days=settings.year_backward_days)
    latest = ref + timedelta(days=settings.year_forward_days)
    if not 1 <= month <= 12 or not 1 <= day <= calendar.monthrange(2000, month)[1]:
        return None
    candidates = [
        # Feb 29 lands on Feb 28 in common years.
        date(year, month, min(day, calendar.monthrange(year, month)[1]))
        for year in (ref.year, ref.year - 1, ref.year + 1)
    ]
    for candidate in candidates:
        if earliest <= candidate <= latest:
            return candidate
    return candidates[0]


def parse_date(text: str | None, reference: date | datetime | None = None) -> datetime | None:
    if not text or not text.strip():
        return None
    sanitized = _normalize_date_text(text)

    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(sanitized, fmt)
        except ValueError:
            continue

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(sanitized, fmt)
        except ValueError:
            continue

    m = _MONTH_DAY_RE.match(sanitized)
    if m:
        inferred = infer_year(int(m.group(1)), int(m.group(2)), reference)
        if inferred is not None:
            return datetime(inferred.year, inferred.month, inferred.day)

    return None
