from __future__ import annotations

from collections.abc import Iterable


class StatementImportError(ValueError):
    """A whole file was rejected. Individual bad rows never raise."""


class UnsupportedFormatError(StatementImportError):
    def __init__(self, extension: str, supported: Iterable[str]) -> None:
        self.extension = extension
        self.supported = tuple(supported)
        shown = f".{extension}" if extension else "(no extension)"
        super().__init__(
            f"Unsupported file format: {shown} (supported: {', '.join(self.supported)})"
        )


class NoTransactionsError(StatementImportError):
    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(
            f"No transactions detected in {filename}. "
            "Check that the file has a header row with date, description and amount columns."
        )
