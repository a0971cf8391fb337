"""Configuration helpers for the spreadsheet data-access layer."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from agritrade import app_paths
from agritrade.errors import ConfigurationError
from agritrade.schema import INVENTORY, LEGACY, PRODUCTS, PROFILES, TRADE_HISTORY, VARIANTS

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "sheets_settings.json"
ENV_PREFIX = "AGRITRADE_"
VALUE_INPUT_OPTIONS = ("RAW", "USER_ENTERED")
DEFAULT_TIMEOUT_SECONDS = 15.0
MIN_TIMEOUT_SECONDS = 1.0
MAX_TIMEOUT_SECONDS = 120.0

# Never persisted by save_sheets_settings.
SECRET_KEYS = ("api_key", "private_key")

_TABLE_SHEET_KEYS: Mapping[str, str] = {
    INVENTORY: "inventory_sheet_id",
    PRODUCTS: "products_sheet_id",
    TRADE_HISTORY: "trade_history_sheet_id",
    PROFILES: "profiles_sheet_id",
}


@dataclass
class SheetsSettings:
    inventory_sheet_id: str = ""
    products_sheet_id: str = ""
    trade_history_sheet_id: str = ""
    profiles_sheet_id: str = ""
    api_key: str = ""
    credential_path: str = ""
    client_email: str = ""
    private_key: str = ""
    worksheet_title: str = ""
    schema_variant: str = LEGACY
    value_input_option: str = "USER_ENTERED"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    serialize_writes: bool = False

    def sheet_id_for(self, table: str) -> str:
        key = _TABLE_SHEET_KEYS.get(table)
        if key is None:
            raise ConfigurationError(f"Unknown table {table!r}")
        value = getattr(self, key).strip()
        if not value:
            raise ConfigurationError(
                f"No spreadsheet id configured for {table}; set {ENV_PREFIX}{key.upper()}"
            )
        return value

    def has_credentials(self) -> bool:
        return bool(
            self.api_key or self.credential_path or (self.client_email and self.private_key)
        )

    def to_json(self) -> Dict[str, object]:
        return {
            "inventory_sheet_id": self.inventory_sheet_id,
            "products_sheet_id": self.products_sheet_id,
            "trade_history_sheet_id": self.trade_history_sheet_id,
            "profiles_sheet_id": self.profiles_sheet_id,
            "credential_path": self.credential_path,
            "client_email": self.client_email,
            "worksheet_title": self.worksheet_title,
            "schema_variant": self.schema_variant,
            "value_input_option": self.value_input_option,
            "timeout_seconds": self.timeout_seconds,
            "serialize_writes": self.serialize_writes,
        }


def default_settings_path() -> str:
    return str(app_paths.data_path(SETTINGS_FILENAME))


def _default_payload() -> Dict[str, object]:
    return SheetsSettings().to_json()


def _ensure_settings_file(path: str) -> Dict[str, object]:
    if not os.path.exists(path):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        payload = _default_payload()
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
        return payload
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a JSON object")
    return data


def _parse_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(value)


def _clamp_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_SECONDS
    return max(MIN_TIMEOUT_SECONDS, min(MAX_TIMEOUT_SECONDS, timeout))


def _environment_overrides(environ: Mapping[str, str]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for key in SheetsSettings.__dataclass_fields__:
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value is not None and value != "":
            overrides[key] = value
    return overrides


def load_sheets_settings(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SheetsSettings:
    """Return settings merged from defaults, the JSON file and ``AGRITRADE_*`` variables.

    Environment variables take precedence over the file, which only ever holds
    non-secret values.
    """

    environ = os.environ if environ is None else environ
    path = path or default_settings_path()
    merged: Dict[str, object] = _default_payload()
    for key, value in _ensure_settings_file(path).items():
        if key in SECRET_KEYS:
            logger.warning("Ignoring %s stored in %s; use the environment instead", key, path)
            continue
        if key in merged:
            merged[key] = value
    merged.update(_environment_overrides(environ))

    variant = str(merged.get("schema_variant") or LEGACY).strip().lower()
    if variant not in VARIANTS:
        raise ConfigurationError(
            f"Unknown schema variant {variant!r}; expected one of {', '.join(VARIANTS)}"
        )
    value_input_option = str(merged.get("value_input_option") or "USER_ENTERED").strip().upper()
    if value_input_option not in VALUE_INPUT_OPTIONS:
        logger.warning("Unsupported valueInputOption %r, using USER_ENTERED", value_input_option)
        value_input_option = "USER_ENTERED"

    def _text(key: str) -> str:
        value = merged.get(key)
        return "" if value is None else str(value).strip()

    return SheetsSettings(
        inventory_sheet_id=_text("inventory_sheet_id"),
        products_sheet_id=_text("products_sheet_id"),
        trade_history_sheet_id=_text("trade_history_sheet_id"),
        profiles_sheet_id=_text("profiles_sheet_id"),
        api_key=_text("api_key"),
        credential_path=_text("credential_path"),
        client_email=_text("client_email"),
        private_key=str(merged.get("private_key") or ""),
        worksheet_title=_text("worksheet_title"),
        schema_variant=variant,
        value_input_option=value_input_option,
        timeout_seconds=_clamp_timeout(merged.get("timeout_seconds")),
        serialize_writes=_parse_bool(merged.get("serialize_writes", False)),
    )


def save_sheets_settings(settings: SheetsSettings, path: Optional[str] = None) -> None:
    path = path or default_settings_path()
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(settings.to_json(), handle, indent=2)


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "ENV_PREFIX",
    "SheetsSettings",
    "VALUE_INPUT_OPTIONS",
    "default_settings_path",
    "load_sheets_settings",
    "save_sheets_settings",
]
