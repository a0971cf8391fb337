"""Conversion between raw cell grids and field-keyed records.

The spreadsheets are edited by hand, so reading is deliberately forgiving:

* numeric cells that do not start with a number read as ``0``;
* date cells that cannot be parsed read as an :class:`InvalidDate` sentinel
  which formats as ``"Invalid Date"`` and writes back its original text;
* rows shorter than the header are padded with empty cells.

Only closed enumerations (roles, owner types, availability, trade status) are
strict, raising :class:`~agritrade.errors.RecordParseError` on unknown values.

Row order is preserved exactly, blank rows included, because the position of a
record in the returned list is its row address for later writes.
"""
from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from agritrade.errors import ConfigurationError, RecordParseError
from agritrade.schema import ColumnType, SheetColumn, TableSchema, enum_values

logger = logging.getLogger(__name__)

HEADER_SEPARATOR = "_"
DEFAULT_DATE_FORMAT = "%b %d, %Y"

_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_HEADER_SPLIT = re.compile(r"[\s\-]+")
_FALLBACK_DATE_FORMATS: Tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
)


class InvalidDate:
    """Sentinel for a date cell whose text could not be parsed."""

    __slots__ = ("raw",)

    def __init__(self, raw: str = "") -> None:
        self.raw = raw

    def __bool__(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, InvalidDate) and other.raw == self.raw

    def __hash__(self) -> int:
        return hash(("InvalidDate", self.raw))

    def __str__(self) -> str:
        return "Invalid Date"

    def __repr__(self) -> str:
        return f"InvalidDate({self.raw!r})"


def is_invalid_date(value: Any) -> bool:
    return isinstance(value, InvalidDate)


def normalize_header(name: Any) -> str:
    """Return the record key for a header cell: trimmed, lower-cased, ``_``-joined."""

    text = "" if name is None else str(name).strip().lower()
    return _HEADER_SPLIT.sub(HEADER_SEPARATOR, text)


def parse_number(value: Any) -> float:
    """Parse ``value`` leniently, returning ``0.0`` when it is not numeric.

    Like a spreadsheet user would expect, a leading number is honoured even when
    followed by a unit (``"12.5kg"`` reads as ``12.5``).
    """

    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMBER_PREFIX.match("" if value is None else str(value))
        if not match:
            return 0.0
        number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_date(value: Any) -> Optional[Any]:
    """Return a UTC :class:`datetime`, ``None`` for blank cells, or :class:`InvalidDate`."""

    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = _parse_date_text(text)
        if parsed is None:
            return InvalidDate(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_date_text(text: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for pattern in _FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    return None


def format_date(value: Any, pattern: str = DEFAULT_DATE_FORMAT) -> str:
    """Format a parsed date for display; blanks give ``""`` and bad dates ``"Invalid Date"``."""

    if value is None:
        return ""
    if is_invalid_date(value):
        return str(value)
    if not isinstance(value, datetime):
        value = parse_date(value)
        if not isinstance(value, datetime):
            return format_date(value, pattern)
    return value.strftime(pattern)


def format_number(value: Any) -> str:
    if value is None or value == "":
        return ""
    number = parse_number(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _format_date_cell(value: Any) -> str:
    if value is None:
        return ""
    if is_invalid_date(value):
        return value.raw
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
            return value.replace(tzinfo=None).isoformat() + "Z"
        return value.isoformat()
    return str(value)


def _parse_enum(column: SheetColumn, cell: Any, table: str, row_number: int) -> Optional[Enum]:
    if isinstance(cell, Enum):
        return cell
    text = "" if cell is None else str(cell).strip().lower()
    if not text:
        return None
    if column.enum is None:
        raise ConfigurationError(f"{table}: enum column {column.field} has no enumeration")
    for member in column.enum:  # type: ignore[attr-defined]
        if member.value == text:
            return member
    logger.warning(
        "%s row %s: %r is not one of %s for %s",
        table,
        row_number,
        cell,
        ", ".join(enum_values(column)),
        column.field,
    )
    raise RecordParseError(table, row_number, column.field, cell)


def coerce_cell(column: SheetColumn, cell: Any, *, table: str = "", row_number: int = 0) -> Any:
    """Convert one raw cell according to ``column``'s type."""

    if column.type is ColumnType.NUMBER:
        if column.optional and (cell is None or str(cell).strip() == ""):
            return None
        return parse_number(cell)
    if column.type is ColumnType.DATE:
        return parse_date(cell)
    if column.type is ColumnType.ENUM:
        return _parse_enum(column, cell, table, row_number)
    return "" if cell is None else str(cell)


def header_diagnostics(header_row: Sequence[Any], schema: TableSchema) -> Tuple[List[str], List[str]]:
    """Return ``(missing, unexpected)`` normalised header names."""

    present = [normalize_header(cell) for cell in header_row]
    expected = [normalize_header(header) for header in schema.headers()]
    missing = [name for name in expected if name not in present]
    unexpected = [name for name in present if name and name not in expected]
    return missing, unexpected


def _column_positions(header_row: Sequence[Any], schema: TableSchema) -> Dict[str, Optional[int]]:
    index: Dict[str, int] = {}
    for position, cell in enumerate(header_row):
        index.setdefault(normalize_header(cell), position)
    return {
        column.field: index.get(normalize_header(column.header)) for column in schema.columns
    }


def parse_rows(
    header_row: Optional[Sequence[Any]],
    data_rows: Optional[Sequence[Sequence[Any]]],
    schema: TableSchema,
) -> List[Dict[str, Any]]:
    """Materialise ``data_rows`` into records keyed by ``schema`` field names.

    ``header_row`` is matched against the schema by normalised name. Schema
    columns without a matching header read as empty cells; the mismatch is
    logged once per call using normalised names.
    """

    if not header_row:
        if data_rows:
            logger.warning("%s: %s data rows ignored without a header row", schema.table, len(data_rows))
        return []

    missing, unexpected = header_diagnostics(header_row, schema)
    if missing:
        logger.warning(
            "%s: header row lacks %s (reading as empty)", schema.table, ", ".join(missing)
        )
    if unexpected:
        logger.debug("%s: ignoring extra columns %s", schema.table, ", ".join(unexpected))

    positions = _column_positions(header_row, schema)
    records: List[Dict[str, Any]] = []
    for row_number, raw in enumerate(data_rows or (), start=1):
        record: Dict[str, Any] = {}
        for column in schema.columns:
            position = positions[column.field]
            cell = raw[position] if position is not None and position < len(raw) else ""
            record[column.field] = coerce_cell(
                column, cell, table=schema.table, row_number=row_number
            )
        records.append(record)
    return records


def format_cell(column: SheetColumn, value: Any) -> str:
    if column.type is ColumnType.NUMBER:
        return format_number(value)
    if column.type is ColumnType.DATE:
        return _format_date_cell(value)
    if isinstance(value, Enum):
        return str(value.value)
    return "" if value is None else str(value)


def to_row(
    record: Mapping[str, Any],
    schema: TableSchema,
    header_row: Optional[Sequence[Any]] = None,
    existing: Optional[Sequence[Any]] = None,
) -> List[Any]:
    """Serialise ``record`` into one row of cells.

    Without ``header_row`` cells follow ``schema`` column order. With it, each
    schema column is written under the header cell of the same normalised
    name, and cells under headers the schema does not know keep their value
    from ``existing``. Schema columns absent from the header are not written.
    """

    if not header_row:
        return [format_cell(column, record.get(column.field)) for column in schema.columns]

    width = max(len(header_row), len(existing or ()))
    row: List[Any] = list(existing or ()) + [""] * (width - len(existing or ()))
    for field_name, position in _column_positions(header_row, schema).items():
        if position is None:
            continue
        row[position] = format_cell(schema.column(field_name), record.get(field_name))
    return row


__all__ = [
    "DEFAULT_DATE_FORMAT",
    "HEADER_SEPARATOR",
    "InvalidDate",
    "coerce_cell",
    "format_cell",
    "format_date",
    "format_number",
    "header_diagnostics",
    "is_invalid_date",
    "normalize_header",
    "parse_date",
    "parse_number",
    "parse_rows",
    "to_row",
]
