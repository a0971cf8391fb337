"""Per-table access to one spreadsheet.

A :class:`TableGateway` owns the A1 ranges of its table and the two transport
calls. It never decides which row to write: callers pass the 1-based data row
index they obtained from a read, and the gateway turns it into an address.
That address is only correct while nobody else inserts or removes rows.

Tables with a header row are read in two calls, the header row first, so the
data range always spans every column the sheet actually has. Writes to such
tables follow the header order of the snapshot they were computed from.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence

from agritrade.grid import parse_rows, to_row
from agritrade.schema import TableSchema, column_letter
from agritrade.transport import Grid, SpreadsheetTransport

logger = logging.getLogger(__name__)

# Sheet row 1 is the header; data row N lives on sheet row N + HEADER_OFFSET.
HEADER_OFFSET = 1
HEADER_ROW_RANGE = "1:1"


def quote_worksheet_title(title: str) -> str:
    """Return ``title`` quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if len(safe) >= 2 and safe[0] == safe[-1] and safe[0] in {"'", '"'}:
        safe = safe[1:-1]
    return "'" + safe.replace("'", "''") + "'"


def a1_range(worksheet_title: str, range_spec: str) -> str:
    """Prefix ``range_spec`` with the quoted worksheet title when one is set."""

    if not (worksheet_title or "").strip():
        return range_spec
    return f"{quote_worksheet_title(worksheet_title)}!{range_spec}"


@dataclass
class TableSnapshot:
    """Rows of one table as they were at the moment of the read.

    ``header`` is the sheet's own header row for named schemas and the schema
    headers for positional ones. ``rows`` holds the raw cells of each data row,
    which :meth:`TableGateway.write_record` uses to preserve unknown columns.
    """

    table: str
    header: List[Any]
    rows: Grid
    records: List[Dict[str, Any]] = field(default_factory=list)
    positional: bool = False

    def __len__(self) -> int:
        return len(self.records)

    def index_of(self, field_name: str, value: Any) -> Optional[int]:
        """Return the 1-based data row index of the first record matching ``value``."""

        matches = [
            position
            for position, record in enumerate(self.records, start=1)
            if record.get(field_name) == value
        ]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                "%s: %s=%r appears on data rows %s; using the first",
                self.table,
                field_name,
                value,
                matches,
            )
        return matches[0]

    def cells(self, data_index: int) -> List[Any]:
        """Raw cells of data row ``data_index``, or ``[]`` past the last row."""

        if 1 <= data_index <= len(self.rows):
            return list(self.rows[data_index - 1])
        return []


class TableGateway:
    """Read and write one logical table through a :class:`SpreadsheetTransport`."""

    def __init__(
        self,
        schema: TableSchema,
        spreadsheet_id: str,
        transport: SpreadsheetTransport,
        *,
        worksheet_title: str = "",
        value_input_option: str = "USER_ENTERED",
        serialize_writes: bool = False,
    ) -> None:
        self.schema = schema
        self.spreadsheet_id = spreadsheet_id
        self._transport = transport
        self._worksheet_title = worksheet_title
        self._value_input_option = value_input_option
        self._serialize_writes = serialize_writes
        # Created on first use and bound to the loop that created it.
        self._write_lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def table(self) -> str:
        return self.schema.table

    @property
    def serialize_writes(self) -> bool:
        return self._serialize_writes

    # ------------------------------------------------------------------
    # Ranges
    # ------------------------------------------------------------------
    def header_range(self) -> str:
        """Open-ended range covering the whole header row."""

        return a1_range(self._worksheet_title, HEADER_ROW_RANGE)

    def table_range(self, width: Optional[int] = None) -> str:
        """Range read by :meth:`read_records`.

        Positional schemas start below the header at the schema's last column.
        Named schemas start at the header row and span ``width`` columns, at
        least as many as the schema declares.
        """

        if self.schema.positional:
            return a1_range(
                self._worksheet_title, f"A{1 + HEADER_OFFSET}:{self.schema.last_column()}"
            )
        columns = max(width or 0, len(self.schema.columns))
        return a1_range(self._worksheet_title, f"A1:{column_letter(columns)}")

    def row_address(self, data_index: int) -> str:
        """Return the ``A{row}`` anchor for 1-based ``data_index``."""

        if data_index < 1:
            raise ValueError("Data row index must be >= 1")
        return a1_range(self._worksheet_title, f"A{data_index + HEADER_OFFSET}")

    def append_address(self, count: int) -> str:
        """Return the anchor directly below the last of ``count`` known data rows."""

        return self.row_address(count + 1)

    # ------------------------------------------------------------------
    # Transport calls
    # ------------------------------------------------------------------
    async def read(self, range: str) -> Grid:
        values = await self._transport.get_values(self.spreadsheet_id, range)
        logger.debug("%s: read %s rows from %s", self.table, len(values), range)
        return values

    async def write(self, range: str, rows: Sequence[Sequence[Any]]) -> None:
        logger.debug("%s: writing %s rows to %s", self.table, len(rows), range)
        await self._transport.update_values(
            self.spreadsheet_id, range, rows, self._value_input_option
        )

    async def read_records(self) -> TableSnapshot:
        if self.schema.positional:
            header: List[Any] = self.schema.headers()
            rows = await self.read(self.table_range())
        else:
            header_rows = await self.read(self.header_range())
            width = len(header_rows[0]) if header_rows else 0
            values = await self.read(self.table_range(width)) if width else []
            if values:
                header, rows = list(values[0]), values[1:]
            else:
                header, rows = [], []
        records = parse_rows(header, rows, self.schema)
        return TableSnapshot(
            table=self.table,
            header=header,
            rows=rows,
            records=records,
            positional=self.schema.positional,
        )

    async def write_record(
        self,
        data_index: int,
        record: Mapping[str, Any],
        snapshot: Optional[TableSnapshot] = None,
    ) -> str:
        """Overwrite data row ``data_index`` with ``record``; returns the address used.

        When ``snapshot`` comes from a named schema, cells are laid out in its
        header order and columns the schema does not know keep their values.
        """

        address = self.row_address(data_index)
        if snapshot is not None and not snapshot.positional and snapshot.header:
            row = to_row(record, self.schema, snapshot.header, snapshot.cells(data_index))
        else:
            row = to_row(record, self.schema)
        await self.write(address, [row])
        return address

    def _lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._write_lock is None or self._lock_loop is not loop:
            self._write_lock = asyncio.Lock()
            self._lock_loop = loop
        return self._write_lock

    @contextlib.asynccontextmanager
    async def write_guard(self) -> AsyncIterator[None]:
        """Hold this table's in-process write lock when serialisation is enabled."""

        if not self._serialize_writes:
            yield
            return
        async with self._lock():
            yield


__all__ = [
    "HEADER_OFFSET",
    "HEADER_ROW_RANGE",
    "TableGateway",
    "TableSnapshot",
    "a1_range",
    "quote_worksheet_title",
]
