"""Helpers for validating and normalising Google service account credentials."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Mapping

from agritrade.errors import ConfigurationError

__all__ = [
    "CredentialsFileInvalidError",
    "DEFAULT_TOKEN_URI",
    "REQUIRED_FIELDS",
    "load_service_account_data",
    "service_account_info_from_pair",
]

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


class CredentialsFileInvalidError(ConfigurationError):
    """Raised when service account data is missing required fields."""


REQUIRED_FIELDS: Iterable[str] = (
    "type",
    "client_email",
    "private_key",
    "token_uri",
)


def _normalise_private_key(key: str) -> str:
    key = key.replace("\r\n", "\n").replace("\r", "\n")
    key = key.replace("\\n", "\n")
    if not key.endswith("\n"):
        key += "\n"
    return key


def _load_json(path: Path) -> Mapping[str, object]:
    try:
        with path.open("r", encoding="utf-8-sig") as handle:
            raw = handle.read()
    except OSError as exc:
        raise CredentialsFileInvalidError(f"Could not read credentials file: {exc}") from exc

    payload_text = raw.strip()
    if not payload_text:
        raise CredentialsFileInvalidError("Service account JSON is empty.")

    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise CredentialsFileInvalidError(f"JSON parse error: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise CredentialsFileInvalidError("Service account JSON must be an object.")
    return payload


def _validate_payload(payload: Mapping[str, object]) -> Dict[str, object]:
    data: Dict[str, object] = dict(payload)
    missing: list[str] = []

    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            missing.append(field)

    if data.get("type") != "service_account":
        missing.append("type")

    if missing:
        ordered = ", ".join(sorted(dict.fromkeys(missing)))
        raise CredentialsFileInvalidError(f"JSON missing fields: {ordered}")

    data["private_key"] = _normalise_private_key(str(data["private_key"]))
    return data


def load_service_account_data(path: Path) -> Dict[str, object]:
    """Return validated service account data read from ``path``."""

    return _validate_payload(_load_json(Path(path)))


def service_account_info_from_pair(client_email: str, private_key: str) -> Dict[str, object]:
    """Build service account info from a bare client e-mail / private key pair.

    Deployments that only provide the two environment variables rather than a
    JSON key file go through this path.
    """

    return _validate_payload(
        {
            "type": "service_account",
            "client_email": client_email,
            "private_key": private_key,
            "token_uri": DEFAULT_TOKEN_URI,
        }
    )
