"""Header location, delimiter sniffing and row alignment for tabular exports.

Bank exports routinely put a preamble (account number, query period, a
title) above the real header row, and card exports drop cells for optional
amount columns. Header detection only looks inside a fixed row window.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from spend_ledger.core.config import settings
from spend_ledger.core.logging import get_logger, log_event
from spend_ledger.modules.importer.normalize import normalize_token
from spend_ledger.modules.importer.row_mapper import map_row
from spend_ledger.modules.ledger.domain import ParsedRecord
from spend_ledger.modules.ledger.models import EntrySource

logger = get_logger(__name__)

DATE_HEADER_TOKENS = frozenset(
    {
        "date", "datetime", "거래일", "거래일자", "거래일시", "거래시간", "사용일",
        "이용일", "승인일", "승인일시", "결제일", "매입일", "일자", "날짜",
    }
)
DESCRIPTION_HEADER_TOKENS = frozenset(
    {
        "description", "memo", "merchant", "detail", "적요", "내용", "가맹점",
        "이용가맹점", "거래내용", "거래처", "상호", "상호명", "상대명", "사용처",
    }
)
AMOUNT_HEADER_TOKENS = frozenset(
    {
        "amount", "total", "금액", "결제금액", "결제원금", "청구금액", "승인금액",
        "거래금액", "이용금액", "사용금액", "출금", "입금",
    }
)
# Columns an issuer may leave out of a data row entirely.
OPTIONAL_MISSING_COLUMN_TOKENS = frozenset(
    normalize_token(t)
    for t in (
        "amount", "total", "금액", "거래금액", "결제금액", "승인금액",
        "이용금액", "사용금액", "출금", "입금",
    )
)


@dataclass
class ParseResult:
    records: list[ParsedRecord] = field(default_factory=list)
    skipped_rows: int = 0

    def extend(self, other: ParseResult) -> None:
        self.records.extend(other.records)
        self.skipped_rows += other.skipped_rows

    def __len__(self) -> int:
        return len(self.records)


def _matches(cell: str, tokens: frozenset[str]) -> bool:
    return any(token in cell for token in tokens)


def score_header(values: Sequence[str]) -> int | None:
    normalized = [c for c in (normalize_token(v) for v in values) if c]
    if not normalized:
        return None

    has_date = any(_matches(c, DATE_HEADER_TOKENS) for c in normalized)
    has_amount = any(_matches(c, AMOUNT_HEADER_TOKENS) for c in normalized)
    has_description = any(_matches(c, DESCRIPTION_HEADER_TOKENS) for c in normalized)
    matched = sum(
        1
        for c in normalized
        if _matches(c, DATE_HEADER_TOKENS)
        or _matches(c, AMOUNT_HEADER_TOKENS)
        or _matches(c, DESCRIPTION_HEADER_TOKENS)
    )

    score = 0
    if has_date:
        score += 4
    if has_amount:
        score += 4
    if has_description:
        score += 2
    score += matched
    if len(normalized) >= 4:
        score += 1
    if len(normalized) == 1:
        score -= 3
    return score


def find_header_index(rows: Sequence[Sequence[str]], window: int) -> int | None:
    """Index of the most header-like row, or the first non-blank row as a fallback.

    Returns ``None`` only when every row is blank.
    """
    first_non_blank = next(
        (i for i, row in enumerate(rows) if any((v or "").strip() for v in row)), None
    )
    if first_non_blank is None:
        return None

    best_index = first_non_blank
    best_score: int | None = None
    scan_end = min(len(rows) - 1, first_non_blank + window)
    for index in range(first_non_blank, scan_end + 1):
        score = score_header(rows[index])
        if score is None:
            continue
        if best_score is None or score > best_score:
            best_score = score
            best_index = index

    if best_score is not None and best_score >= settings.header_min_score:
        return best_index
    return first_non_blank


def detect_delimiter(line: str) -> str:
    tabs = line.count("\t")
    commas = line.count(",")
    semicolons = line.count(";")
    if tabs >= commas and tabs >= semicolons and tabs > 0:
        return "\t"
    if semicolons > commas:
        return ";"
    return ","


def normalize_headers(values: Sequence[str]) -> list[str]:
    return [(v or "").strip() or f"col_{i}" for i, v in enumerate(values)]


def align_values_to_headers(headers: Sequence[str], values: Sequence[str]) -> list[str]:
    """Pad a short row by leaving optional amount columns blank.

    Without this, one omitted amount cell shifts every following value one
    column to the left.
    """
    if not headers:
        return []
    if len(values) >= len(headers):
        return list(values[: len(headers)])

    aligned = [""] * len(headers)
    h = 0
    v = 0
    while h < len(headers) and v < len(values):
        remaining_headers = len(headers) - h
        remaining_values = len(values) - v
        if (
            remaining_values < remaining_headers
            and normalize_token(headers[h]) in OPTIONAL_MISSING_COLUMN_TOKENS
        ):
            h += 1
            continue
        aligned[h] = values[v]
        h += 1
        v += 1
    return aligned


def pad_values_to_headers(headers: Sequence[str], values: Sequence[str]) -> list[str]:
    """Map cells by position: missing trailing cells are blank, extra cells are dropped."""
    width = len(headers)
    return [*values[:width], *[""] * (width - len(values))]


def records_from_table(
    headers: Sequence[str],
    rows: Iterable[Sequence[str]],
    *,
    source: EntrySource,
    reference: date | datetime | None = None,
    positional: bool = False,
) -> ParseResult:
    """Map each non-blank row to a record.

    ``positional`` rows keep their cells in column order (delimited text);
    otherwise short rows are aligned around optional amount columns.
    """
    align = pad_values_to_headers if positional else align_values_to_headers
    result = ParseResult()
    for values in rows:
        if not any((v or "").strip() for v in values):
            continue
        aligned = align(headers, values)
        row = {header: (aligned[i] or "").strip() for i, header in enumerate(headers)}
        record = map_row(row, source, reference)
        if record is None:
            result.skipped_rows += 1
            continue
        result.records.append(record)
    if result.skipped_rows:
        log_event(
            logger,
            "importer.rows.skipped",
            level=logging.DEBUG,
            source=source.value,
            skipped_rows=result.skipped_rows,
            parsed_rows=len(result.records),
        )
    return result


def decode_best_effort(body: bytes) -> str:
    if body.startswith(b"\xef\xbb\xbf"):
        return body[3:].decode("utf-8", errors="replace")
    if body.startswith(b"\xff\xfe"):
        return body[2:].decode("utf-16-le", errors="replace")
    if body.startswith(b"\xfe\xff"):
        return body[2:].decode("utf-16-be", errors="replace")

    utf8 = body.decode("utf-8", errors="replace")
    utf8_bad = utf8.count("\ufffd")
    if utf8_bad == 0:
        return utf8
    cp949 = body.decode("cp949", errors="replace")
    return cp949 if cp949.count("\ufffd") < utf8_bad else utf8


def looks_like_html_table(text: str) -> bool:
    lower = text.lower()
    return "<table" in lower and "<tr" in lower and ("<td" in lower or "<th" in lower)


_ROW_RE = re.compile(r"(?is)<tr[^>]*>(.*?)</tr>")
_CELL_RE = re.compile(r"(?is)<t[dh][^>]*>(.*?)</t[dh]>")


def _html_cell_text(value: str) -> str:
    text = re.sub(r"(?is)<br\s*/?>", "\n", value)
    text = re.sub(r"(?s)<[^>]+>", " ", text)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def parse_html_table(text: str) -> list[list[str]]:
    rows: list[list[str]] = []
    for row_match in _ROW_RE.finditer(text):
        cells = [_html_cell_text(c) for c in _CELL_RE.findall(row_match.group(1))]
        if cells:
            rows.append(cells)
    return rows
