from __future__ import annotations

import asyncio
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from agritrade.queries import SheetsDataService
from agritrade.settings import SheetsSettings

INVENTORY_ID = "sheet-inventory"
PRODUCTS_ID = "sheet-products"
TRADES_ID = "sheet-trades"
PROFILES_ID = "sheet-profiles"


class FakeTransport:
    """In-memory stand-in for the Sheets values API.

    Each spreadsheet is a full grid whose index 0 is sheet row 1. Reads copy the
    requested rows and then yield to the event loop, so concurrent callers see
    the same snapshot, as they would against the real API.
    """

    def __init__(self, sheets: Optional[Dict[str, Iterable[Sequence[Any]]]] = None) -> None:
        self.sheets: Dict[str, List[List[Any]]] = {
            sheet_id: [list(row) for row in rows] for sheet_id, rows in (sheets or {}).items()
        }
        self.reads: List[tuple] = []
        self.writes: List[tuple] = []
        self.read_failures: Dict[str, Exception] = {}
        self.blocked_reads: Dict[str, asyncio.Event] = {}
        self.cancelled_reads: List[str] = []

    @staticmethod
    def _cell_range(range_spec: str) -> str:
        return range_spec.split("!", 1)[-1]

    @staticmethod
    def _column_index(letters: str) -> int:
        index = 0
        for letter in letters:
            index = index * 26 + (ord(letter) - 64)
        return index

    async def get_values(self, spreadsheet_id: str, range: str) -> List[List[Any]]:
        self.reads.append((spreadsheet_id, range))
        gate = self.blocked_reads.get(spreadsheet_id)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled_reads.append(spreadsheet_id)
                raise
        if spreadsheet_id in self.read_failures:
            raise self.read_failures[spreadsheet_id]
        grid = self.sheets.get(spreadsheet_id, [])
        cell_range = self._cell_range(range)
        rows_only = re.match(r"(\d+):(\d+)$", cell_range)
        if rows_only:
            start, end = int(rows_only.group(1)) - 1, int(rows_only.group(2))
            snapshot = [list(row) for row in grid[start:end] if row]
        else:
            match = re.match(r"A(\d+):([A-Z]+)$", cell_range)
            assert match, f"unexpected read range {range}"
            start = int(match.group(1)) - 1
            width = self._column_index(match.group(2))
            snapshot = [list(row[:width]) for row in grid[start:]]
        await asyncio.sleep(0)
        return snapshot

    async def update_values(
        self,
        spreadsheet_id: str,
        range: str,
        values: Sequence[Sequence[Any]],
        value_input_option: str = "USER_ENTERED",
    ) -> None:
        self.writes.append((spreadsheet_id, range, [list(row) for row in values], value_input_option))
        match = re.match(r"A(\d+)$", self._cell_range(range))
        assert match, f"unexpected write range {range}"
        grid = self.sheets.setdefault(spreadsheet_id, [])
        start = int(match.group(1)) - 1
        for offset, row in enumerate(values):
            while len(grid) <= start + offset:
                grid.append([])
            grid[start + offset] = list(row)


LEGACY_SHEETS: Dict[str, List[List[Any]]] = {
    INVENTORY_ID: [
        ["productId", "productName", "category", "quantity", "listPrice", "costPrice", "status"],
        ["F001-PRD001", "Fresh Tomatoes", "Vegetables", "500", "4.99", "2.50", "In Stock"],
        ["F001-PRD002", "Organic Potatoes", "Root Vegetables", "350", "3.99", "1.75", "Low Stock"],
        ["R001-PRD003", "Green Lettuce", "Leafy Greens", "200", "2.99"],
    ],
    PRODUCTS_ID: [
        ["productId", "name", "category", "description", "price", "imageUrl"],
        ["F001-P1", "Tomatoes", "Vegetables", "Vine ripened", "4.99", "https://img/tomato.png"],
        ["R001-P2", "Rice", "Grains", "Aromatic", "n/a", ""],
    ],
    TRADES_ID: [
        ["date", "tradeId", "farmerUid", "retailerUid", "amount", "status", "details"],
        ["2024-03-01T10:00:00.000Z", "TRD000001", "F001", "R001", "2495", "completed", "500kg tomatoes"],
        ["2024-03-02", "TRD000002", "F002", "R001", "120", "pending", ""],
        ["not a date", "TRD000003", "F001", "R002", "75.5", "rejected", ""],
        ["2024-03-04", "TRD000004", "F003", "R003", "", "Pending", ""],
        ["2024-03-05", "TRD000005", "F001", "R001", "10", "accepted", ""],
    ],
    PROFILES_ID: [
        ["uid", "name", "role", "division", "district", "subDistrict", "contact", "about", "avatarUrl"],
        ["F001", "Rahim Farms", "farmer", "Dhaka", "Gazipur", "Kaliakair", "017000", "Rice and veg", ""],
        ["R001", "City Grocers", "Retailer", "Chattogram", "Chattogram", "Pahartali", "018000", "", ""],
        ["F002", "Green Fields", "farmer", "Rajshahi", "Bogura", "Sherpur", "019000", "", ""],
    ],
}

TYPED_SHEETS: Dict[str, List[List[Any]]] = {
    INVENTORY_ID: [
        ["ID", "Product Name", "Category", "Quantity", "Price Per Unit", "Cost Price", "Unit",
         "Min Stock Level", "Owner Type", "Owner ID"],
        ["INV-1", "Potatoes", "Root", "50", "20", "12", "kg", "100", "farmer", "F001"],
        ["INV-2", "Onions", "Root", "150", "35", "", "kg", "100", "farmer", "F001"],
        ["INV-3", "Lentils", "Pulses", "80", "90", "70", "kg", "20", "retailer", "R001"],
    ],
    PRODUCTS_ID: [
        ["id", "name", "category", "description", "base_price", "unit", "available_for", "image_url",
         "owner_id"],
        ["P-1", "Potatoes", "Root", "Fresh", "20", "kg", "retailer", "", "F001"],
        ["P-2", "Fertiliser", "Inputs", "Urea", "15", "kg", "farmer", "", "R001"],
        ["P-3", "Seeds", "Inputs", "Hybrid", "5", "pack", "both", "", "R001"],
    ],
    TRADES_ID: [
        ["trade_id", "date", "farmer_uid", "retailer_uid", "product_name", "quantity", "unit",
         "price_per_unit", "amount", "status", "details", "seller_name", "buyer_type"],
        ["TRD000001", "2024-04-01T08:00:00Z", "F001", "R001", "Potatoes", "100", "kg", "20", "",
         "completed", "", "Rahim Farms", "retailer"],
        ["TRD000002", "2024-04-02T08:00:00Z", "F002", "R001", "Onions", "10", "kg", "35", "300",
         "failed", "", "Green Fields", "retailer"],
    ],
    PROFILES_ID: [
        ["uid", "name", "role", "division", "district", "sub_district", "contact", "about", "avatar_url",
         "rating", "joined_date"],
        ["F001", "Rahim Farms", "farmer", "Dhaka", "Gazipur", "Kaliakair", "017000", "", "", "4.5",
         "2023-01-15"],
        ["R001", "City Grocers", "retailer", "Chattogram", "Chattogram", "Pahartali", "018000", "", "",
         "", ""],
    ],
}


def make_settings(**overrides: Any) -> SheetsSettings:
    values: Dict[str, Any] = {
        "inventory_sheet_id": INVENTORY_ID,
        "products_sheet_id": PRODUCTS_ID,
        "trade_history_sheet_id": TRADES_ID,
        "profiles_sheet_id": PROFILES_ID,
        "api_key": "test-key",
    }
    values.update(overrides)
    return SheetsSettings(**values)


@pytest.fixture
def legacy_transport() -> FakeTransport:
    return FakeTransport(LEGACY_SHEETS)


@pytest.fixture
def typed_transport() -> FakeTransport:
    return FakeTransport(TYPED_SHEETS)


@pytest.fixture
def legacy_service(legacy_transport: FakeTransport) -> SheetsDataService:
    return SheetsDataService.from_settings(make_settings(), transport=legacy_transport)


@pytest.fixture
def typed_service(typed_transport: FakeTransport) -> SheetsDataService:
    return SheetsDataService.from_settings(
        make_settings(schema_variant="typed"), transport=typed_transport
    )
