"""Error taxonomy shared by the spreadsheet data-access layer.

Every fetch or write operation either returns its typed result or raises one
of the exceptions below. Lenient numeric and date parsing is not an error and
never surfaces here.
"""
from __future__ import annotations

from typing import Optional


class SheetsDataError(Exception):
    """Base error raised by the spreadsheet data-access layer."""


class ConfigurationError(SheetsDataError):
    """Raised when sheet identifiers, credentials or variants are misconfigured."""


class TransportError(SheetsDataError):
    """Raised when a remote read or write fails.

    ``status`` holds the HTTP status code when the Sheets API answered, and is
    ``None`` for timeouts, network failures and malformed payloads.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        range: Optional[str] = None,
    ) -> None:
        self.message = message
        self.status = status
        self.range = range
        super().__init__(self._describe())

    def _describe(self) -> str:
        parts = []
        if self.status is not None:
            parts.append(f"HTTP {self.status}")
        if self.range:
            parts.append(f"range {self.range}")
        prefix = f"[{', '.join(parts)}] " if parts else ""
        return f"{prefix}{self.message}"


class NotFoundError(SheetsDataError):
    """Raised when a write workflow cannot locate its target row."""

    def __init__(self, table: str, key: str) -> None:
        self.table = table
        self.key = key
        super().__init__(f"No row in {table} matches {key!r}")


class RecordParseError(SheetsDataError):
    """Raised when a cell holds a value outside a closed enumeration."""

    def __init__(self, table: str, row_number: int, field: str, value: object) -> None:
        self.table = table
        self.row_number = row_number
        self.field = field
        self.value = value
        super().__init__(
            f"{table} row {row_number}: unrecognised value {value!r} for {field}"
        )


__all__ = [
    "ConfigurationError",
    "NotFoundError",
    "RecordParseError",
    "SheetsDataError",
    "TransportError",
]
