"""Pure summary helpers for dashboard pages.

Every function takes already-fetched records and performs no I/O. Records may
be the dataclasses from :mod:`agritrade.models` or plain mappings using either
snake_case or the dashboard's camelCase keys. Missing or non-numeric numbers
count as ``0``, following :func:`agritrade.grid.parse_number`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from agritrade.grid import parse_number
from agritrade.models import StockStatus, TradeStatus

ALL_DIVISIONS = "All Divisions"

_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "quantity": ("quantity",),
    "price_per_unit": ("price_per_unit", "pricePerUnit", "listPrice", "list_price"),
    "min_stock_level": ("min_stock_level", "minStockLevel"),
    "amount": ("amount",),
    "status": ("status",),
    "division": ("division",),
}

_MISSING = object()


def _field(record: Any, name: str) -> Any:
    for alias in _ALIASES.get(name, (name,)):
        if isinstance(record, Mapping):
            value = record.get(alias, _MISSING)
        else:
            value = getattr(record, alias, _MISSING)
        if value is not _MISSING:
            return value
    return None


def _number(record: Any, name: str) -> float:
    return parse_number(_field(record, name))


@dataclass(frozen=True)
class InventorySummary:
    total_items: int
    total_value: float
    low_stock_count: int


@dataclass(frozen=True)
class TradeStatusCounts:
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    unknown: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.accepted + self.rejected + self.unknown


def total_items(items: Sequence[Any]) -> int:
    return len(items)


def total_value(items: Iterable[Any]) -> float:
    return sum(_number(item, "quantity") * _number(item, "price_per_unit") for item in items)


def low_stock_count(items: Iterable[Any]) -> int:
    """Count items strictly below their minimum stock level."""

    return sum(
        1 for item in items if _number(item, "quantity") < _number(item, "min_stock_level")
    )


def summarize_inventory(items: Sequence[Any]) -> InventorySummary:
    return InventorySummary(
        total_items=total_items(items),
        total_value=total_value(items),
        low_stock_count=low_stock_count(items),
    )


def stock_status_breakdown(items: Iterable[Any]) -> Dict[StockStatus, int]:
    counts = {status: 0 for status in StockStatus}
    for item in items:
        if _number(item, "quantity") > _number(item, "min_stock_level"):
            counts[StockStatus.IN_STOCK] += 1
        else:
            counts[StockStatus.LOW_STOCK] += 1
    return counts


def _trade_status(trade: Any) -> Optional[TradeStatus]:
    value = _field(trade, "status")
    if isinstance(value, TradeStatus):
        return value
    text = "" if value is None else str(value).strip().lower()
    for status in TradeStatus:
        if status.value == text:
            return status
    return None


def trade_status_counts(trades: Iterable[Any]) -> TradeStatusCounts:
    """Bucket trades into pending, accepted (incl. completed) and rejected (incl. failed)."""

    pending = accepted = rejected = unknown = 0
    for trade in trades:
        status = _trade_status(trade)
        if status is TradeStatus.PENDING:
            pending += 1
        elif status is not None and status.is_settled:
            accepted += 1
        elif status is not None and status.is_declined:
            rejected += 1
        else:
            unknown += 1
    return TradeStatusCounts(pending=pending, accepted=accepted, rejected=rejected, unknown=unknown)


def trade_amount(trade: Any) -> float:
    """Stored amount when present, otherwise quantity × price per unit."""

    stored = _field(trade, "amount")
    if stored is not None and str(stored).strip() != "":
        return parse_number(stored)
    return _number(trade, "quantity") * _number(trade, "price_per_unit")


def total_trade_amount(trades: Iterable[Any]) -> float:
    return sum(trade_amount(trade) for trade in trades)


def profiles_in_division(profiles: Iterable[Any], division: Optional[str]) -> List[Any]:
    if division is None or division == ALL_DIVISIONS:
        return list(profiles)
    return [profile for profile in profiles if _field(profile, "division") == division]


__all__ = [
    "ALL_DIVISIONS",
    "InventorySummary",
    "TradeStatusCounts",
    "low_stock_count",
    "profiles_in_division",
    "stock_status_breakdown",
    "summarize_inventory",
    "total_items",
    "total_trade_amount",
    "total_value",
    "trade_amount",
    "trade_status_counts",
]
