"""Spreadsheet statements: OOXML via openpyxl, legacy BIFF via xlrd.

Several Korean banks serve an HTML table or plain delimited text under an
``.xls`` name, so any workbook failure (or a workbook with no recognizable
rows) falls back to parsing the bytes as text.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator, Sequence
from datetime import date, datetime, time
from io import BytesIO

import openpyxl
import xlrd

from spend_ledger.core.config import settings
from spend_ledger.core.logging import get_logger, log_event
from spend_ledger.modules.importer.parsers.csv_statement import parse_delimited_text
from spend_ledger.modules.importer.tabular import (
    ParseResult,
    decode_best_effort,
    find_header_index,
    looks_like_html_table,
    normalize_headers,
    parse_html_table,
    records_from_table,
)
from spend_ledger.modules.ledger.models import EntrySource

logger = get_logger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class NotAWorkbookError(ValueError):
    pass


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _openpyxl_sheets(body: bytes) -> Iterator[list[list[str]]]:
    workbook = openpyxl.load_workbook(BytesIO(body), data_only=True)
    try:
        for sheet in workbook.worksheets:
            yield [
                [_cell_text(v) for v in row]
                for row in sheet.iter_rows(values_only=True)
            ]
    finally:
        workbook.close()


def _xlrd_cell_text(book: xlrd.book.Book, cell: xlrd.sheet.Cell) -> str:
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return _cell_text(xlrd.xldate_as_datetime(cell.value, book.datemode))
        except (ValueError, OverflowError, xlrd.xldate.XLDateError):
            return _cell_text(cell.value)
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return ""
    return _cell_text(cell.value)


def _xlrd_sheets(body: bytes) -> Iterator[list[list[str]]]:
    book = xlrd.open_workbook(file_contents=body)
    try:
        for sheet in book.sheets():
            yield [
                [_xlrd_cell_text(book, c) for c in sheet.row(r)]
                for r in range(sheet.nrows)
            ]
    finally:
        book.release_resources()


def _workbook_sheets(body: bytes) -> Iterator[list[list[str]]]:
    if body.startswith(_ZIP_MAGIC):
        return _openpyxl_sheets(body)
    if body.startswith(_OLE_MAGIC):
        return _xlrd_sheets(body)
    raise NotAWorkbookError("Content is neither an OOXML nor a BIFF workbook")


def _parse_rows(
    rows: Sequence[Sequence[str]],
    *,
    window: int,
    source: EntrySource,
    reference: date | datetime | None,
) -> ParseResult:
    header_index = find_header_index(rows, window)
    if header_index is None:
        return ParseResult()
    headers = normalize_headers(rows[header_index])
    if not headers:
        return ParseResult()
    return records_from_table(
        headers, rows[header_index + 1 :], source=source, reference=reference
    )


class ExcelStatementParser:
    extensions = ("xls", "xlsx")
    source = EntrySource.EXCEL_IMPORT

    def supports(self, extension: str) -> bool:
        return extension.lower() in self.extensions

    def parse(self, body: bytes, *, reference: date | datetime | None = None) -> ParseResult:
        if not body:
            return ParseResult()

        error: Exception | None = None
        result = ParseResult()
        try:
            result = self.parse_workbook(body, reference=reference)
        except Exception as exc:
            error = exc

        if result.records:
            return result

        try:
            fallback = self.parse_text_spreadsheet(body, reference=reference)
        except csv.Error:
            fallback = ParseResult()
        if fallback.records:
            log_event(
                logger,
                "importer.excel.fallback",
                reason=type(error).__name__ if error else "empty_workbook",
                records=len(fallback.records),
            )
            return fallback

        if error is not None:
            raise error
        return result

    def parse_workbook(
        self, body: bytes, *, reference: date | datetime | None = None
    ) -> ParseResult:
        result = ParseResult()
        for rows in _workbook_sheets(body):
            result.extend(
                _parse_rows(
                    rows,
                    window=settings.sheet_header_scan_rows,
                    source=self.source,
                    reference=reference,
                )
            )
        return result

    def parse_text_spreadsheet(
        self, body: bytes, *, reference: date | datetime | None = None
    ) -> ParseResult:
        text = decode_best_effort(body)
        if not text.strip():
            return ParseResult()
        if looks_like_html_table(text):
            rows = parse_html_table(text)
            if len(rows) < 2:
                return ParseResult()
            return _parse_rows(
                rows,
                window=settings.sheet_header_scan_rows,
                source=self.source,
                reference=reference,
            )
        return parse_delimited_text(text, source=self.source, reference=reference)
