from __future__ import annotations

import csv
import io
from datetime import date, datetime

from spend_ledger.core.config import settings
from spend_ledger.modules.importer.tabular import (
    ParseResult,
    decode_best_effort,
    detect_delimiter,
    find_header_index,
    normalize_headers,
    records_from_table,
)
from spend_ledger.modules.ledger.models import EntrySource


def _split_lines(text: str) -> list[str]:
    return [line.rstrip("\r") for line in text.split("\n")]


def parse_delimited_text(
    text: str,
    *,
    source: EntrySource,
    reference: date | datetime | None = None,
) -> ParseResult:
    """Parse comma, semicolon or tab separated text with a header somewhere near the top."""
    text = text.removeprefix("\ufeff")
    if not text.strip():
        return ParseResult()

    lines = _split_lines(text)
    # Each candidate line is split on its own delimiter so a preamble written
    # with a different separator cannot hide the header.
    candidates = [line.split(detect_delimiter(line)) if line.strip() else [] for line in lines]
    header_index = find_header_index(candidates, settings.text_header_scan_rows)
    if header_index is None:
        return ParseResult()

    body_lines = lines[header_index:]
    delimiter = detect_delimiter(body_lines[0])
    reader = csv.reader(io.StringIO("\n".join(body_lines)), delimiter=delimiter, skipinitialspace=True)
    rows = [[cell.strip() for cell in row] for row in reader]
    if not rows:
        return ParseResult()

    headers = normalize_headers(rows[0])
    return records_from_table(
        headers, rows[1:], source=source, reference=reference, positional=True
    )


class CsvStatementParser:
    extensions = ("csv",)
    source = EntrySource.CSV_IMPORT

    def supports(self, extension: str) -> bool:
        return extension.lower() in self.extensions

    def parse(self, body: bytes, *, reference: date | datetime | None = None) -> ParseResult:
        if not body:
            return ParseResult()
        return parse_delimited_text(
            decode_best_effort(body), source=self.source, reference=reference
        )
