"""Spreadsheet-backed data access for the farmer/retailer trading dashboard."""

from agritrade.aggregates import (
    InventorySummary,
    TradeStatusCounts,
    low_stock_count,
    profiles_in_division,
    stock_status_breakdown,
    summarize_inventory,
    total_items,
    total_trade_amount,
    total_value,
    trade_status_counts,
)
from agritrade.errors import (
    ConfigurationError,
    NotFoundError,
    RecordParseError,
    SheetsDataError,
    TransportError,
)
from agritrade.models import (
    Availability,
    InventoryItem,
    OwnerType,
    Product,
    Profile,
    Role,
    StockStatus,
    Trade,
    TradeDraft,
    TradeStatus,
)
from agritrade.queries import SheetsDataService, UserDashboard
from agritrade.settings import SheetsSettings, load_sheets_settings
from agritrade.version import __version__
from agritrade.workflows import create_trade, update_inventory, update_profile

__all__ = [
    "Availability",
    "ConfigurationError",
    "InventoryItem",
    "InventorySummary",
    "NotFoundError",
    "OwnerType",
    "Product",
    "Profile",
    "RecordParseError",
    "Role",
    "SheetsDataError",
    "SheetsDataService",
    "SheetsSettings",
    "StockStatus",
    "Trade",
    "TradeDraft",
    "TradeStatus",
    "TradeStatusCounts",
    "TransportError",
    "UserDashboard",
    "__version__",
    "create_trade",
    "load_sheets_settings",
    "low_stock_count",
    "profiles_in_division",
    "stock_status_breakdown",
    "summarize_inventory",
    "total_items",
    "total_trade_amount",
    "total_value",
    "trade_status_counts",
    "update_inventory",
    "update_profile",
]
