from __future__ import annotations

import re
from datetime import date, datetime
from io import BytesIO

from pypdf import PdfReader

from spend_ledger.modules.importer.normalize import parse_date, parse_signed_amount
from spend_ledger.modules.importer.tabular import ParseResult
from spend_ledger.modules.ledger.domain import ParsedRecord
from spend_ledger.modules.ledger.models import EntrySource

_LINE_RE = re.compile(
    r"(\d{4}[./-]\d{1,2}[./-]\d{1,2}|\d{1,2}[./-]\d{1,2})\s+(.+?)\s+([+-]?\d[\d,]*)\s*(원|KRW)?$",
    re.I,
)
INCOME_HINTS = ("입금", "수입", "환급", "급여")


def extract_pdf_lines(body: bytes) -> list[str]:
    reader = PdfReader(BytesIO(body))
    lines: list[str] = []
    for page in reader.pages:
        text = (page.extract_text() or "").replace("\u202f", " ").replace("\xa0", " ")
        lines.extend(ln.strip() for ln in text.splitlines() if ln.strip())
    return lines


def parse_statement_line(
    line: str, reference: date | datetime | None = None
) -> ParsedRecord | None:
    m = _LINE_RE.search(line)
    if not m:
        return None
    date_text, description, amount_text = m.group(1), m.group(2).strip(), m.group(3).strip()

    occurred_at = parse_date(date_text, reference)
    if occurred_at is None:
        return None
    amount = parse_signed_amount(amount_text)
    if amount == 0:
        return None

    if not amount_text.startswith(("+", "-")):
        lower = description.lower()
        amount = abs(amount) if any(h in lower for h in INCOME_HINTS) else -abs(amount)

    return ParsedRecord(
        occurred_at=occurred_at,
        signed_amount=amount,
        description=description,
        merchant=description,
        source=EntrySource.PDF_IMPORT,
        raw={"line": line},
    )


class PdfStatementParser:
    extensions = ("pdf", "ppf")
    source = EntrySource.PDF_IMPORT

    def supports(self, extension: str) -> bool:
        return extension.lower() in self.extensions

    def parse(self, body: bytes, *, reference: date | datetime | None = None) -> ParseResult:
        result = ParseResult()
        if not body:
            return result
        for line in extract_pdf_lines(body):
            if not _LINE_RE.search(line):
                continue
            record = parse_statement_line(line, reference)
            if record is None:
                result.skipped_rows += 1
                continue
            result.records.append(record)
        return result
