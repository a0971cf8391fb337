"""Typed fetches over the four table gateways.

:class:`SheetsDataService` is constructed once at start-up and passed to
whoever needs it; there is no module-level client. Each fetch performs a fresh
read, so results are consistent with the sheet only as of that read.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

from agritrade.errors import ConfigurationError
from agritrade.gateway import TableGateway, TableSnapshot
from agritrade.models import InventoryItem, OwnerType, Product, Profile, Role, Trade
from agritrade.schema import (
    INVENTORY,
    LEGACY,
    PRODUCTS,
    PROFILES,
    TABLES,
    TRADE_HISTORY,
    TYPED,
    schemas_for,
)
from agritrade.settings import SheetsSettings
from agritrade.transport import SpreadsheetTransport, build_transport

logger = logging.getLogger(__name__)

OwnerPredicate = Callable[[Any, str], bool]
_T = TypeVar("_T")


def prefix_match(field_name: str = "id") -> OwnerPredicate:
    """Match records whose ``field_name`` starts with the owner id.

    This mirrors the id convention of the legacy sheets, where product ids are
    minted as ``<owner uid><suffix>``.
    """

    def _predicate(record: Any, owner_id: str) -> bool:
        value = getattr(record, field_name, "") or ""
        return bool(owner_id) and str(value).startswith(owner_id)

    return _predicate


def exact_match(field_name: str = "owner_id") -> OwnerPredicate:
    """Match records whose ``field_name`` equals the owner id."""

    def _predicate(record: Any, owner_id: str) -> bool:
        return getattr(record, field_name, None) == owner_id

    return _predicate


def owner_type_match(owner_type: OwnerType) -> Callable[[InventoryItem], bool]:
    def _predicate(item: InventoryItem) -> bool:
        return item.owner_type is owner_type

    return _predicate


DEFAULT_OWNER_PREDICATES: Mapping[str, Mapping[str, OwnerPredicate]] = {
    LEGACY: {INVENTORY: prefix_match("id"), PRODUCTS: prefix_match("id")},
    TYPED: {INVENTORY: exact_match("owner_id"), PRODUCTS: exact_match("owner_id")},
}


@dataclass
class UserDashboard:
    """Everything one dashboard page needs for a single user."""

    inventory: List[InventoryItem] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    trades: List[Trade] = field(default_factory=list)
    profile: Optional[Profile] = None


async def gather_or_cancel(*awaitables: Awaitable[_T]) -> List[_T]:
    """Run ``awaitables`` concurrently; the first failure cancels the rest and is re-raised."""

    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class SheetsDataService:
    """Domain query layer over the Inventory, Products, TradeHistory and Profiles tables."""

    def __init__(
        self,
        gateways: Mapping[str, TableGateway],
        *,
        owner_predicates: Optional[Mapping[str, OwnerPredicate]] = None,
    ) -> None:
        missing = [table for table in TABLES if table not in gateways]
        if missing:
            raise ConfigurationError(f"Missing gateways for {', '.join(missing)}")
        self._gateways: Dict[str, TableGateway] = dict(gateways)
        variant = self._gateways[INVENTORY].schema.variant
        predicates = dict(DEFAULT_OWNER_PREDICATES.get(variant, DEFAULT_OWNER_PREDICATES[LEGACY]))
        if owner_predicates:
            predicates.update(owner_predicates)
        self._owner_predicates = predicates

    @classmethod
    def from_settings(
        cls,
        settings: SheetsSettings,
        transport: Optional[SpreadsheetTransport] = None,
        *,
        owner_predicates: Optional[Mapping[str, OwnerPredicate]] = None,
    ) -> "SheetsDataService":
        if transport is None:
            transport = build_transport(settings)
        schemas = schemas_for(settings.schema_variant)
        gateways = {
            table: TableGateway(
                schemas[table],
                settings.sheet_id_for(table),
                transport,
                worksheet_title=settings.worksheet_title,
                value_input_option=settings.value_input_option,
                serialize_writes=settings.serialize_writes,
            )
            for table in TABLES
        }
        logger.info(
            "Sheets data service ready (variant=%s, serialize_writes=%s)",
            settings.schema_variant,
            settings.serialize_writes,
        )
        return cls(gateways, owner_predicates=owner_predicates)

    def gateway(self, table: str) -> TableGateway:
        try:
            return self._gateways[table]
        except KeyError:
            raise ConfigurationError(f"Unknown table {table!r}") from None

    @property
    def variant(self) -> str:
        return self._gateways[INVENTORY].schema.variant

    # ------------------------------------------------------------------
    # Snapshots (used by the write workflows)
    # ------------------------------------------------------------------
    async def snapshot(self, table: str) -> TableSnapshot:
        return await self.gateway(table).read_records()

    # ------------------------------------------------------------------
    # Whole-table fetches
    # ------------------------------------------------------------------
    async def fetch_inventory(self) -> List[InventoryItem]:
        snapshot = await self.snapshot(INVENTORY)
        return [InventoryItem.from_record(record) for record in snapshot.records]

    async def fetch_products(self) -> List[Product]:
        snapshot = await self.snapshot(PRODUCTS)
        return [Product.from_record(record) for record in snapshot.records]

    async def fetch_trade_history(self) -> List[Trade]:
        snapshot = await self.snapshot(TRADE_HISTORY)
        return [Trade.from_record(record) for record in snapshot.records]

    async def fetch_profiles(self) -> List[Profile]:
        snapshot = await self.snapshot(PROFILES)
        return [Profile.from_record(record) for record in snapshot.records]

    # ------------------------------------------------------------------
    # Per-user fetches
    # ------------------------------------------------------------------
    async def fetch_user_inventory(
        self, owner_id: str, *, predicate: Optional[OwnerPredicate] = None
    ) -> List[InventoryItem]:
        belongs = predicate or self._owner_predicates[INVENTORY]
        return [item for item in await self.fetch_inventory() if belongs(item, owner_id)]

    async def fetch_user_products(
        self, owner_id: str, *, predicate: Optional[OwnerPredicate] = None
    ) -> List[Product]:
        belongs = predicate or self._owner_predicates[PRODUCTS]
        return [product for product in await self.fetch_products() if belongs(product, owner_id)]

    async def fetch_user_trade_history(self, user_id: str, role: Role) -> List[Trade]:
        role = Role(role)
        return [trade for trade in await self.fetch_trade_history() if trade.involves(user_id, role)]

    async def fetch_user_profile(self, user_id: str) -> Optional[Profile]:
        """Return the first profile with ``uid == user_id``, or ``None`` when absent."""

        for profile in await self.fetch_profiles():
            if profile.uid == user_id:
                return profile
        logger.info("No profile found for %s", user_id)
        return None

    async def fetch_user_dashboard(self, user_id: str, role: Role) -> UserDashboard:
        """Load inventory, products, trades and profile for one user concurrently.

        Fails as a whole: when any of the four reads raises, the others are
        cancelled and that first error propagates unchanged.
        """

        inventory, products, trades, profile = await gather_or_cancel(
            self.fetch_user_inventory(user_id),
            self.fetch_user_products(user_id),
            self.fetch_user_trade_history(user_id, role),
            self.fetch_user_profile(user_id),
        )
        return UserDashboard(inventory=inventory, products=products, trades=trades, profile=profile)

    # ------------------------------------------------------------------
    # Page-level filters
    # ------------------------------------------------------------------
    async def fetch_farmers(self, division: Optional[str] = None) -> List[Profile]:
        """Return farmer profiles, optionally limited to one division."""

        farmers = [profile for profile in await self.fetch_profiles() if profile.role is Role.FARMER]
        if division is None:
            return farmers
        return [profile for profile in farmers if profile.division == division]

    async def fetch_trades_by_buyer_type(self, buyer_type: Role) -> List[Trade]:
        buyer_type = Role(buyer_type)
        return [trade for trade in await self.fetch_trade_history() if trade.buyer_type is buyer_type]

    async def fetch_products_for_role(self, role: Role) -> List[Product]:
        role = Role(role)
        return [product for product in await self.fetch_products() if product.offered_to(role)]


__all__ = [
    "DEFAULT_OWNER_PREDICATES",
    "OwnerPredicate",
    "SheetsDataService",
    "UserDashboard",
    "exact_match",
    "gather_or_cancel",
    "owner_type_match",
    "prefix_match",
]
