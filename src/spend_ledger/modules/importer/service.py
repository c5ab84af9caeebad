from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from datetime import date, datetime

from spend_ledger.core.config import settings
from spend_ledger.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_import_context,
    set_import_context,
)
from spend_ledger.modules.importer.errors import NoTransactionsError, UnsupportedFormatError
from spend_ledger.modules.importer.parsers.csv_statement import CsvStatementParser
from spend_ledger.modules.importer.parsers.excel_statement import ExcelStatementParser
from spend_ledger.modules.importer.parsers.pdf_statement import PdfStatementParser
from spend_ledger.modules.importer.sniffer import SUPPORTED_EXTENSIONS, detect_format
from spend_ledger.modules.importer.tabular import ParseResult

logger = get_logger(__name__)


def default_parsers() -> tuple:
    return (CsvStatementParser(), ExcelStatementParser(), PdfStatementParser())


class StatementImporter:
    def __init__(self, parsers: Sequence | None = None) -> None:
        self.parsers = tuple(parsers) if parsers is not None else default_parsers()

    def parser_for(self, extension: str):
        return next((p for p in self.parsers if p.supports(extension)), None)

    def import_statement(
        self,
        body: bytes,
        filename: str,
        content_type: str | None = None,
        *,
        reference: date | datetime | None = None,
    ) -> ParseResult:
        """Detect the statement format and parse every transaction row.

        Raises ``UnsupportedFormatError`` when no parser claims the detected
        format and ``NoTransactionsError`` when the file yields no rows.
        """
        tokens = set_import_context(import_id=str(uuid.uuid4()), source=filename)
        try:
            start = time.monotonic()
            extension = detect_format(filename, content_type, body[: settings.sniff_bytes])
            log_event(
                logger,
                "importer.detect_format",
                filename=filename,
                content_type=content_type,
                byte_size=len(body),
                extension=extension,
            )

            parser = self.parser_for(extension)
            if parser is None:
                log_event(logger, "importer.unsupported_format", extension=extension)
                raise UnsupportedFormatError(extension, SUPPORTED_EXTENSIONS)

            try:
                result = parser.parse(body, reference=reference)
            except Exception:
                log_exception(
                    logger,
                    "importer.parse.failed",
                    parser=type(parser).__name__,
                    duration_ms=monotonic_ms(start),
                )
                raise

            log_event(
                logger,
                "importer.parse.finish",
                parser=type(parser).__name__,
                records=len(result.records),
                skipped_rows=result.skipped_rows,
                duration_ms=monotonic_ms(start),
            )
            if not result.records:
                raise NoTransactionsError(filename)
            return result
        finally:
            reset_import_context(tokens)
