"""Write workflows: trade creation and partial row updates.

Each workflow is a read-modify-write. The row address is computed from a read
taken at the start of the workflow and used for the write at the end, with no
isolation in between: another writer that inserts or deletes rows in that
window makes the write land on the wrong row, and two concurrent trade
creations can compute the same trade id. Both are accepted behaviour of a
spreadsheet-backed store. When ``serialize_writes`` is enabled the table's
in-process lock is held from the read to the write, which closes the window
for writers within this process only.

Cancelling a workflow before its write call starts leaves the sheet untouched.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping

from agritrade.errors import NotFoundError
from agritrade.grid import coerce_cell
from agritrade.models import InventoryItem, Profile, Trade, TradeDraft, TradeStatus
from agritrade.queries import SheetsDataService
from agritrade.schema import INVENTORY, PROFILES, TRADE_HISTORY, TableSchema

logger = logging.getLogger(__name__)

TRADE_ID_PREFIX = "TRD"
TRADE_ID_DIGITS = 6


def next_trade_id(existing_count: int) -> str:
    """Return the id for the trade appended after ``existing_count`` rows."""

    if existing_count < 0:
        raise ValueError("existing_count must be >= 0")
    return f"{TRADE_ID_PREFIX}{existing_count + 1:0{TRADE_ID_DIGITS}d}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


async def create_trade(
    service: SheetsDataService,
    draft: TradeDraft,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> Trade:
    """Append ``draft`` to the trade history and return the stored trade.

    The trade id is derived from the number of rows read just before the
    append, so it is not unique under concurrent writers.
    """

    gateway = service.gateway(TRADE_HISTORY)
    async with gateway.write_guard():
        snapshot = await gateway.read_records()
        count = len(snapshot)
        amount = draft.amount
        if amount is None:
            amount = draft.quantity * draft.price_per_unit
        trade = Trade(
            trade_id=next_trade_id(count),
            date=draft.date or clock(),
            farmer_uid=draft.farmer_uid,
            retailer_uid=draft.retailer_uid,
            product_name=draft.product_name,
            quantity=draft.quantity,
            price_per_unit=draft.price_per_unit,
            amount=amount,
            status=draft.status or TradeStatus.PENDING,
            details=draft.details,
            unit=draft.unit,
            seller_name=draft.seller_name,
            buyer_type=draft.buyer_type,
        )
        address = await gateway.write_record(count + 1, trade.to_record(), snapshot)
    logger.info("Created trade %s at %s", trade.trade_id, address)
    return trade


def _merge_updates(
    schema: TableSchema,
    current: Mapping[str, Any],
    updates: Mapping[str, Any],
    row_number: int,
) -> Dict[str, Any]:
    rejected = sorted(key for key in updates if not schema.has_field(key))
    if rejected:
        raise ValueError(
            f"{schema.table} ({schema.variant}) cannot store: {', '.join(rejected)}"
        )
    merged = dict(current)
    for key, value in updates.items():
        merged[key] = coerce_cell(schema.column(key), value, table=schema.table, row_number=row_number)
    return merged


async def _update_row(
    service: SheetsDataService,
    table: str,
    key: str,
    updates: Mapping[str, Any],
) -> Dict[str, Any]:
    gateway = service.gateway(table)
    key_field = gateway.schema.key_field
    async with gateway.write_guard():
        snapshot = await gateway.read_records()
        index = snapshot.index_of(key_field, key)
        if index is None:
            logger.warning("%s: no row with %s=%r; nothing written", table, key_field, key)
            raise NotFoundError(table, key)
        merged = _merge_updates(gateway.schema, snapshot.records[index - 1], updates, index)
        address = await gateway.write_record(index, merged, snapshot)
    logger.info("%s: updated %s=%r at %s", table, key_field, key, address)
    return merged


async def update_inventory(
    service: SheetsDataService, item_id: str, updates: Mapping[str, Any]
) -> InventoryItem:
    """Merge ``updates`` into the inventory row with ``id == item_id``.

    Raises :class:`~agritrade.errors.NotFoundError` without writing when no row
    matches, and :class:`ValueError` for fields the sheet does not store.
    """

    merged = await _update_row(service, INVENTORY, item_id, updates)
    return InventoryItem.from_record(merged)


async def update_profile(
    service: SheetsDataService, uid: str, updates: Mapping[str, Any]
) -> Profile:
    merged = await _update_row(service, PROFILES, uid, updates)
    return Profile.from_record(merged)


__all__ = [
    "TRADE_ID_DIGITS",
    "TRADE_ID_PREFIX",
    "create_trade",
    "next_trade_id",
    "update_inventory",
    "update_profile",
]
