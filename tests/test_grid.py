from __future__ import annotations

from datetime import datetime, timezone

import pytest

from agritrade import grid
from agritrade.errors import ConfigurationError, RecordParseError
from agritrade.models import Availability, InventoryItem, OwnerType, Product, Profile, Role, Trade, TradeStatus
from agritrade.schema import INVENTORY, PRODUCTS, PROFILES, TRADE_HISTORY, ColumnType, SheetColumn, schema_for


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("abc", 0.0),
        ("12.5", 12.5),
        ("", 0.0),
        (None, 0.0),
        ("  42 ", 42.0),
        ("12.5kg", 12.5),
        ("-3", -3.0),
        ("1e3", 1000.0),
        ("NaN", 0.0),
        (7, 7.0),
    ],
)
def test_parse_number_is_lenient(raw, expected) -> None:
    assert grid.parse_number(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Product Name", "product_name"),
        ("  Min  Stock Level ", "min_stock_level"),
        ("owner-id", "owner_id"),
        ("productId", "productid"),
        (None, ""),
    ],
)
def test_normalize_header(raw, expected) -> None:
    assert grid.normalize_header(raw) == expected


def test_parse_date_variants() -> None:
    utc = timezone.utc
    assert grid.parse_date("2024-03-01T10:00:00.000Z") == datetime(2024, 3, 1, 10, 0, tzinfo=utc)
    assert grid.parse_date("2024-03-02") == datetime(2024, 3, 2, tzinfo=utc)
    assert grid.parse_date("03/04/2024") == datetime(2024, 3, 4, tzinfo=utc)
    assert grid.parse_date("") is None
    assert grid.parse_date(None) is None


def test_invalid_date_is_a_sentinel_not_an_error() -> None:
    value = grid.parse_date("next tuesday")

    assert grid.is_invalid_date(value)
    assert not value
    assert str(value) == "Invalid Date"
    assert grid.format_date(value) == "Invalid Date"


def test_format_date_uses_dashboard_pattern() -> None:
    value = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert grid.format_date(value) == "Mar 01, 2024"
    assert grid.format_date("2024-03-01") == "Mar 01, 2024"
    assert grid.format_date(None) == ""


def test_parse_rows_pads_short_rows() -> None:
    schema = schema_for(INVENTORY, "legacy")
    records = grid.parse_rows(schema.headers(), [["X-1", "Lettuce"]], schema)

    assert records == [
        {
            "id": "X-1",
            "product_name": "Lettuce",
            "category": "",
            "quantity": 0.0,
            "price_per_unit": 0.0,
            "cost_price": None,
            "stock_label": "",
        }
    ]


def test_parse_rows_without_header_is_empty() -> None:
    schema = schema_for(PRODUCTS, "typed")
    assert grid.parse_rows([], [], schema) == []
    assert grid.parse_rows(None, None, schema) == []
    assert grid.parse_rows([], [["orphan"]], schema) == []


def test_parse_rows_matches_headers_by_normalised_name() -> None:
    schema = schema_for(PRODUCTS, "typed")
    header = ["Name", "ID", "Base Price", "Available For", "Unexpected"]
    records = grid.parse_rows(header, [["Rice", "P-9", "12", "Both", "zzz"]], schema)

    record = records[0]
    assert record["id"] == "P-9"
    assert record["name"] == "Rice"
    assert record["price"] == 12.0
    assert record["available_for"] is Availability.BOTH
    assert record["description"] == ""


def test_header_diagnostics_reports_normalised_names() -> None:
    schema = schema_for(PRODUCTS, "typed")
    missing, unexpected = grid.header_diagnostics(["ID", "Name", "Colour"], schema)

    assert "base_price" in missing
    assert "id" not in missing
    assert unexpected == ["colour"]


def test_parse_rows_logs_missing_columns(caplog) -> None:
    schema = schema_for(PRODUCTS, "typed")
    with caplog.at_level("WARNING"):
        grid.parse_rows(["id", "name"], [["P-1", "Rice"]], schema)

    assert "base_price" in caplog.text


def test_unknown_enum_value_is_a_parse_error() -> None:
    schema = schema_for(PROFILES, "legacy")
    rows = [["U1", "Ana", "farmer"], ["U2", "Bo", "wholesaler"]]

    with pytest.raises(RecordParseError) as excinfo:
        grid.parse_rows(schema.headers(), rows, schema)

    assert excinfo.value.row_number == 2
    assert excinfo.value.field == "role"
    assert excinfo.value.value == "wholesaler"


def test_blank_enum_cell_reads_as_none() -> None:
    schema = schema_for(PROFILES, "legacy")
    records = grid.parse_rows(schema.headers(), [["U1", "Ana", ""]], schema)
    assert records[0]["role"] is None


def test_to_row_formats_cells() -> None:
    schema = schema_for(TRADE_HISTORY, "legacy")
    record = {
        "date": datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
        "trade_id": "TRD000001",
        "farmer_uid": "F001",
        "retailer_uid": "R001",
        "amount": 2495.0,
        "status": TradeStatus.COMPLETED,
        "details": None,
    }

    assert grid.to_row(record, schema) == [
        "2024-03-01T10:00:00Z",
        "TRD000001",
        "F001",
        "R001",
        "2495",
        "completed",
        "",
    ]


def test_to_row_writes_back_unparseable_date_text() -> None:
    schema = schema_for(TRADE_HISTORY, "legacy")
    record = {"date": grid.parse_date("sometime in May"), "trade_id": "TRD000009"}
    assert grid.to_row(record, schema)[0] == "sometime in May"


_UTC = timezone.utc


@pytest.mark.parametrize(
    "table, variant, record",
    [
        (
            INVENTORY,
            "typed",
            InventoryItem(
                id="INV-1",
                product_name="Potatoes",
                category="Root",
                quantity=50.0,
                price_per_unit=20.25,
                cost_price=None,
                unit="kg",
                min_stock_level=100.0,
                owner_type=OwnerType.FARMER,
                owner_id="F001",
            ),
        ),
        (
            PRODUCTS,
            "typed",
            Product(id="P-1", name="Seeds", price=5.5, available_for=Availability.BOTH, owner_id="R1"),
        ),
        (
            TRADE_HISTORY,
            "typed",
            Trade(
                trade_id="TRD000003",
                date=datetime(2024, 4, 1, 8, 30, tzinfo=_UTC),
                farmer_uid="F001",
                retailer_uid="R001",
                product_name="Onions",
                quantity=10.0,
                price_per_unit=35.0,
                amount=350.0,
                status=TradeStatus.ACCEPTED,
                buyer_type=Role.RETAILER,
            ),
        ),
        (
            PROFILES,
            "legacy",
            Profile(uid="F001", name="Rahim", role=Role.FARMER, division="Dhaka", sub_district="Savar"),
        ),
        (
            INVENTORY,
            "legacy",
            InventoryItem(
                id="F001-PRD002",
                product_name="Organic Potatoes",
                category="Root Vegetables",
                quantity=350.0,
                price_per_unit=3.99,
                cost_price=1.75,
                stock_label="Low Stock",
            ),
        ),
        (
            PRODUCTS,
            "legacy",
            Product(
                id="F001-P1",
                name="Tomatoes",
                category="Vegetables",
                description="Vine ripened",
                price=4.99,
                image_url="https://img/tomato.png",
            ),
        ),
        (
            TRADE_HISTORY,
            "legacy",
            Trade(
                trade_id="TRD000004",
                date=grid.InvalidDate("sometime in May"),
                farmer_uid="F003",
                retailer_uid="R003",
                amount=None,
                status=TradeStatus.PENDING,
                details="call first",
            ),
        ),
    ],
)
def test_serialise_then_parse_restores_record(table, variant, record) -> None:
    schema = schema_for(table, variant)
    stored = {key: value for key, value in record.to_record().items() if schema.has_field(key)}

    row = grid.to_row(stored, schema)
    parsed = grid.parse_rows(schema.headers(), [row], schema)

    assert parsed == [stored]


def test_enum_column_without_enumeration_is_a_configuration_error() -> None:
    column = SheetColumn("role", "role", ColumnType.ENUM)

    with pytest.raises(ConfigurationError):
        grid.coerce_cell(column, "farmer", table="Profiles", row_number=1)
    assert grid.coerce_cell(column, "", table="Profiles", row_number=1) is None


def test_to_row_follows_header_order_and_keeps_unknown_cells() -> None:
    schema = schema_for(PRODUCTS, "typed")
    header = ["Notes", "Base Price", "ID", "Name"]
    existing = ["keep", "10", "P-1", "Seeds"]
    record = {"id": "P-1", "name": "Hybrid Seeds", "price": 12.5}

    assert grid.to_row(record, schema, header, existing) == ["keep", "12.5", "P-1", "Hybrid Seeds"]
    assert grid.to_row(record, schema, header) == ["", "12.5", "P-1", "Hybrid Seeds"]
