"""Typed records for the four spreadsheet tables.

Records are plain dataclasses keyed by the field names used in
:mod:`agritrade.schema`. Derived values (stock status, trade totals) are
properties computed on access and never appear in :meth:`to_record`.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union


class Role(Enum):
    FARMER = "farmer"
    RETAILER = "retailer"


class OwnerType(Enum):
    FARMER = "farmer"
    RETAILER = "retailer"


class Availability(Enum):
    FARMER = "farmer"
    RETAILER = "retailer"
    BOTH = "both"


class TradeStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"

    @property
    def is_settled(self) -> bool:
        return self in (TradeStatus.ACCEPTED, TradeStatus.COMPLETED)

    @property
    def is_declined(self) -> bool:
        return self in (TradeStatus.REJECTED, TradeStatus.FAILED)


class StockStatus(Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"


# Either a parsed timestamp or the grid module's invalid-date sentinel.
DateValue = Union[datetime, Any]

_RecordT = TypeVar("_RecordT", bound="_Record")


class _Record:
    """Shared mapping conversions for the table dataclasses."""

    @classmethod
    def from_record(cls: Type[_RecordT], record: Mapping[str, Any]) -> _RecordT:
        names = {item.name for item in fields(cls)}  # type: ignore[arg-type]
        return cls(**{key: value for key, value in record.items() if key in names})

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass
class InventoryItem(_Record):
    id: str
    product_name: str = ""
    category: str = ""
    quantity: float = 0.0
    price_per_unit: float = 0.0
    cost_price: Optional[float] = None
    unit: str = ""
    min_stock_level: float = 0.0
    owner_type: Optional[OwnerType] = None
    owner_id: str = ""
    stock_label: str = ""

    @property
    def status(self) -> StockStatus:
        if self.quantity > self.min_stock_level:
            return StockStatus.IN_STOCK
        return StockStatus.LOW_STOCK

    @property
    def value(self) -> float:
        return self.quantity * self.price_per_unit


@dataclass
class Product(_Record):
    id: str
    name: str = ""
    category: str = ""
    description: str = ""
    price: float = 0.0
    unit: str = ""
    available_for: Optional[Availability] = None
    image_url: str = ""
    owner_id: str = ""

    def offered_to(self, role: Role) -> bool:
        """Return ``True`` when the product is listed for ``role``."""

        if self.available_for is None or self.available_for is Availability.BOTH:
            return True
        return self.available_for.value == role.value


@dataclass
class Trade(_Record):
    trade_id: str
    date: Optional[DateValue] = None
    farmer_uid: str = ""
    retailer_uid: str = ""
    product_name: str = ""
    quantity: float = 0.0
    price_per_unit: float = 0.0
    amount: Optional[float] = None
    status: Optional[TradeStatus] = None
    details: str = ""
    unit: str = ""
    seller_name: str = ""
    buyer_type: Optional[Role] = None

    @property
    def total_amount(self) -> float:
        if self.amount is not None:
            return self.amount
        return self.quantity * self.price_per_unit

    def involves(self, user_id: str, role: Role) -> bool:
        if role is Role.FARMER:
            return self.farmer_uid == user_id
        return self.retailer_uid == user_id


@dataclass
class TradeDraft:
    """Input for trade creation; the trade id is assigned on append."""

    farmer_uid: str
    retailer_uid: str
    product_name: str = ""
    quantity: float = 0.0
    price_per_unit: float = 0.0
    amount: Optional[float] = None
    status: TradeStatus = TradeStatus.PENDING
    details: str = ""
    unit: str = ""
    seller_name: str = ""
    buyer_type: Optional[Role] = None
    date: Optional[datetime] = None


@dataclass
class Profile(_Record):
    uid: str
    name: str = ""
    role: Optional[Role] = None
    division: str = ""
    district: str = ""
    sub_district: str = ""
    contact: str = ""
    about: str = ""
    avatar_url: str = ""
    rating: Optional[float] = None
    joined_date: Optional[DateValue] = None


__all__ = [
    "Availability",
    "InventoryItem",
    "OwnerType",
    "Product",
    "Profile",
    "Role",
    "StockStatus",
    "Trade",
    "TradeDraft",
    "TradeStatus",
]
