"""Spreadsheet transport backed by the Google Sheets v4 values API.

The rest of the package only depends on the two coroutine methods of
:class:`SpreadsheetTransport`. :class:`GoogleSheetsTransport` implements them
on top of ``googleapiclient``:

* every request is executed off the event loop with its own ``httplib2.Http``
  instance, since the client's shared connection is not safe to use from
  more than one thread at a time;
* every call is bounded by a fixed timeout;
* every failure surfaces as :class:`~agritrade.errors.TransportError` with the
  HTTP status preserved when the API answered. Nothing is retried.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Mapping, Protocol, Sequence

import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from agritrade.errors import ConfigurationError, TransportError
from agritrade.google_credentials import load_service_account_data, service_account_info_from_pair
from agritrade.settings import DEFAULT_TIMEOUT_SECONDS, SheetsSettings

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
MAJOR_DIMENSION = "ROWS"

Grid = List[List[Any]]


class SpreadsheetTransport(Protocol):
    async def get_values(self, spreadsheet_id: str, range: str) -> Grid:
        ...

    async def update_values(
        self,
        spreadsheet_id: str,
        range: str,
        values: Sequence[Sequence[Any]],
        value_input_option: str = "USER_ENTERED",
    ) -> None:
        ...


def _http_error_message(exc: HttpError) -> str:
    reason = getattr(exc, "reason", None)
    if reason:
        return str(reason)
    return str(exc)


def _validate_grid(payload: Any, range: str) -> Grid:
    if not isinstance(payload, Mapping):
        raise TransportError("Malformed response: expected a JSON object", range=range)
    values = payload.get("values", [])
    if values is None:
        return []
    if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
        raise TransportError("Malformed response: 'values' is not a list of rows", range=range)
    return [["" if cell is None else cell for cell in row] for row in values]


class GoogleSheetsTransport:
    """Speak to the Sheets values API with an API key or service account."""

    def __init__(
        self,
        *,
        api_key: str = "",
        credentials=None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        service=None,
    ) -> None:
        self._api_key = api_key
        self._credentials = credentials
        self._timeout = timeout
        if service is None:
            if credentials is None and not api_key:
                raise ConfigurationError(
                    "Either an API key or service account credentials are required"
                )
            service = build(
                "sheets",
                "v4",
                credentials=credentials,
                developerKey=api_key or None,
                cache_discovery=False,
            )
        self._service = service

    @property
    def timeout(self) -> float:
        return self._timeout

    def _new_http(self):
        http = httplib2.Http(timeout=self._timeout)
        if self._credentials is not None:
            return google_auth_httplib2.AuthorizedHttp(self._credentials, http=http)
        return http

    async def _execute(self, request, range: str) -> Any:
        http = self._new_http()

        def call() -> Any:
            return request.execute(http=http)

        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout=self._timeout)
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            message = _http_error_message(exc)
            logger.error("Sheets API error for %s: %s %s", range, status, message)
            raise TransportError(message, status=int(status) if status else None, range=range) from exc
        except asyncio.TimeoutError as exc:
            logger.error("Sheets API call for %s timed out after %ss", range, self._timeout)
            raise TransportError(f"Timed out after {self._timeout}s", range=range) from exc
        except (httplib2.HttpLib2Error, OSError, ValueError) as exc:
            logger.error("Sheets API call for %s failed: %s", range, exc)
            raise TransportError(str(exc) or exc.__class__.__name__, range=range) from exc

    async def get_values(self, spreadsheet_id: str, range: str) -> Grid:
        request = (
            self._service.spreadsheets()
            .values()
            .get(spreadsheetId=spreadsheet_id, range=range, majorDimension=MAJOR_DIMENSION)
        )
        payload = await self._execute(request, range)
        return _validate_grid(payload, range)

    async def update_values(
        self,
        spreadsheet_id: str,
        range: str,
        values: Sequence[Sequence[Any]],
        value_input_option: str = "USER_ENTERED",
    ) -> None:
        body = {
            "range": range,
            "majorDimension": MAJOR_DIMENSION,
            "values": [list(row) for row in values],
        }
        request = (
            self._service.spreadsheets()
            .values()
            .update(
                spreadsheetId=spreadsheet_id,
                range=range,
                valueInputOption=value_input_option,
                body=body,
            )
        )
        await self._execute(request, range)


def _credentials_from_settings(settings: SheetsSettings):
    if settings.credential_path:
        info = load_service_account_data(Path(settings.credential_path).expanduser())
    elif settings.client_email and settings.private_key:
        info = service_account_info_from_pair(settings.client_email, settings.private_key)
    else:
        return None
    return service_account.Credentials.from_service_account_info(info, scopes=list(SCOPES))


def build_transport(settings: SheetsSettings) -> GoogleSheetsTransport:
    """Factory used by :meth:`SheetsDataService.from_settings`."""

    if not settings.has_credentials():
        raise ConfigurationError(
            "No Sheets credentials configured; set AGRITRADE_API_KEY or a service account"
        )
    credentials = _credentials_from_settings(settings)
    return GoogleSheetsTransport(
        api_key=settings.api_key,
        credentials=credentials,
        timeout=settings.timeout_seconds,
    )


__all__ = [
    "GoogleSheetsTransport",
    "Grid",
    "SCOPES",
    "SpreadsheetTransport",
    "build_transport",
]
