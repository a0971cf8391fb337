"""Column schema descriptors for the four spreadsheet tables.

A :class:`TableSchema` is an ordered list of :class:`SheetColumn` entries, each
mapping a source header name to a record field and a cell type. The mapping is
data consumed by :mod:`agritrade.grid`; no call site manipulates header strings
directly.

Two schema variants exist because the spreadsheets were populated by two
different clients:

``legacy``
    Positional camelCase layout. Data is read from row 2 onwards and column
    order is taken from the schema, so the header row is never consulted.

``typed``
    snake_case header row. The header row is read on every fetch and columns
    are located by their normalised header name.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Type

from agritrade.errors import ConfigurationError
from agritrade.models import Availability, OwnerType, Role, TradeStatus

INVENTORY = "Inventory"
PRODUCTS = "Products"
TRADE_HISTORY = "TradeHistory"
PROFILES = "Profiles"
TABLES: Tuple[str, ...] = (INVENTORY, PRODUCTS, TRADE_HISTORY, PROFILES)

LEGACY = "legacy"
TYPED = "typed"
VARIANTS: Tuple[str, ...] = (LEGACY, TYPED)


class ColumnType(Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    ENUM = "ENUM"


def column_letter(index: int) -> str:
    """Return the spreadsheet column letter for a 1-indexed column index."""

    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: List[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


@dataclass(frozen=True)
class SheetColumn:
    header: str
    field: str
    type: ColumnType = ColumnType.TEXT
    enum: Optional[Type[Enum]] = None
    # Empty numeric cells become ``None`` instead of ``0``.
    optional: bool = False


@dataclass(frozen=True)
class TableSchema:
    table: str
    columns: Tuple[SheetColumn, ...]
    positional: bool = False
    key_field: str = "id"
    variant: str = LEGACY

    def headers(self) -> List[str]:
        return [column.header for column in self.columns]

    def fields(self) -> List[str]:
        return [column.field for column in self.columns]

    def last_column(self) -> str:
        return column_letter(len(self.columns))

    def column(self, field_name: str) -> SheetColumn:
        for column in self.columns:
            if column.field == field_name:
                return column
        raise KeyError(field_name)

    def has_field(self, field_name: str) -> bool:
        return any(column.field == field_name for column in self.columns)


def _text(header: str, field_name: str) -> SheetColumn:
    return SheetColumn(header, field_name)


def _number(header: str, field_name: str, *, optional: bool = False) -> SheetColumn:
    return SheetColumn(header, field_name, ColumnType.NUMBER, optional=optional)


def _date(header: str, field_name: str) -> SheetColumn:
    return SheetColumn(header, field_name, ColumnType.DATE)


def _enum(header: str, field_name: str, enum: Type[Enum]) -> SheetColumn:
    return SheetColumn(header, field_name, ColumnType.ENUM, enum=enum)


LEGACY_SCHEMAS: Mapping[str, TableSchema] = {
    INVENTORY: TableSchema(
        table=INVENTORY,
        positional=True,
        columns=(
            _text("productId", "id"),
            _text("productName", "product_name"),
            _text("category", "category"),
            _number("quantity", "quantity"),
            _number("listPrice", "price_per_unit"),
            _number("costPrice", "cost_price", optional=True),
            _text("status", "stock_label"),
        ),
    ),
    PRODUCTS: TableSchema(
        table=PRODUCTS,
        positional=True,
        columns=(
            _text("productId", "id"),
            _text("name", "name"),
            _text("category", "category"),
            _text("description", "description"),
            _number("price", "price"),
            _text("imageUrl", "image_url"),
        ),
    ),
    TRADE_HISTORY: TableSchema(
        table=TRADE_HISTORY,
        positional=True,
        key_field="trade_id",
        columns=(
            _date("date", "date"),
            _text("tradeId", "trade_id"),
            _text("farmerUid", "farmer_uid"),
            _text("retailerUid", "retailer_uid"),
            _number("amount", "amount", optional=True),
            _enum("status", "status", TradeStatus),
            _text("details", "details"),
        ),
    ),
    PROFILES: TableSchema(
        table=PROFILES,
        positional=True,
        key_field="uid",
        columns=(
            _text("uid", "uid"),
            _text("name", "name"),
            _enum("role", "role", Role),
            _text("division", "division"),
            _text("district", "district"),
            _text("subDistrict", "sub_district"),
            _text("contact", "contact"),
            _text("about", "about"),
            _text("avatarUrl", "avatar_url"),
        ),
    ),
}

TYPED_SCHEMAS: Mapping[str, TableSchema] = {
    INVENTORY: TableSchema(
        table=INVENTORY,
        variant=TYPED,
        columns=(
            _text("id", "id"),
            _text("product_name", "product_name"),
            _text("category", "category"),
            _number("quantity", "quantity"),
            _number("price_per_unit", "price_per_unit"),
            _number("cost_price", "cost_price", optional=True),
            _text("unit", "unit"),
            _number("min_stock_level", "min_stock_level"),
            _enum("owner_type", "owner_type", OwnerType),
            _text("owner_id", "owner_id"),
        ),
    ),
    PRODUCTS: TableSchema(
        table=PRODUCTS,
        variant=TYPED,
        columns=(
            _text("id", "id"),
            _text("name", "name"),
            _text("category", "category"),
            _text("description", "description"),
            _number("base_price", "price"),
            _text("unit", "unit"),
            _enum("available_for", "available_for", Availability),
            _text("image_url", "image_url"),
            _text("owner_id", "owner_id"),
        ),
    ),
    TRADE_HISTORY: TableSchema(
        table=TRADE_HISTORY,
        variant=TYPED,
        key_field="trade_id",
        columns=(
            _text("trade_id", "trade_id"),
            _date("date", "date"),
            _text("farmer_uid", "farmer_uid"),
            _text("retailer_uid", "retailer_uid"),
            _text("product_name", "product_name"),
            _number("quantity", "quantity"),
            _text("unit", "unit"),
            _number("price_per_unit", "price_per_unit"),
            _number("amount", "amount", optional=True),
            _enum("status", "status", TradeStatus),
            _text("details", "details"),
            _text("seller_name", "seller_name"),
            _enum("buyer_type", "buyer_type", Role),
        ),
    ),
    PROFILES: TableSchema(
        table=PROFILES,
        variant=TYPED,
        key_field="uid",
        columns=(
            _text("uid", "uid"),
            _text("name", "name"),
            _enum("role", "role", Role),
            _text("division", "division"),
            _text("district", "district"),
            _text("sub_district", "sub_district"),
            _text("contact", "contact"),
            _text("about", "about"),
            _text("avatar_url", "avatar_url"),
            _number("rating", "rating", optional=True),
            _date("joined_date", "joined_date"),
        ),
    ),
}

_VARIANT_SCHEMAS: Dict[str, Mapping[str, TableSchema]] = {
    LEGACY: LEGACY_SCHEMAS,
    TYPED: TYPED_SCHEMAS,
}


def schemas_for(variant: str) -> Mapping[str, TableSchema]:
    """Return the table → schema mapping for ``variant``."""

    try:
        return _VARIANT_SCHEMAS[variant]
    except KeyError:
        raise ConfigurationError(
            f"Unknown schema variant {variant!r}; expected one of {', '.join(VARIANTS)}"
        ) from None


def schema_for(table: str, variant: str) -> TableSchema:
    schemas = schemas_for(variant)
    if table not in schemas:
        raise ConfigurationError(f"Unknown table {table!r}")
    return schemas[table]


def enum_values(column: SheetColumn) -> Sequence[str]:
    if column.enum is None:
        return ()
    return [member.value for member in column.enum]  # type: ignore[attr-defined]


__all__ = [
    "ColumnType",
    "INVENTORY",
    "LEGACY",
    "LEGACY_SCHEMAS",
    "PRODUCTS",
    "PROFILES",
    "SheetColumn",
    "TABLES",
    "TRADE_HISTORY",
    "TYPED",
    "TYPED_SCHEMAS",
    "TableSchema",
    "VARIANTS",
    "column_letter",
    "enum_values",
    "schema_for",
    "schemas_for",
]
