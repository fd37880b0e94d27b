from __future__ import annotations

"""Client the dashboard uses to talk to the conversion API.

Works against a remote deployment (``base_url``) or, when given an ASGI
transport, against the API mounted in the same process. Responses are
unwrapped from the ``{success, data}`` envelope; API-level errors become
``DashboardApiError`` carrying the API's public message.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger("forexapi.dashboard")


class DashboardApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CurrencyApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        user_agent: str = "mnFOREX/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = str(base_url).rstrip("/")
        self._timeout = timeout
        self._headers = {"Accept": "application/json", "User-Agent": user_agent}
        self._transport = transport

    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers=self._headers, transport=self._transport
            ) as client:
                resp = await client.get(url, params=params)
        except httpx.TransportError as e:
            raise DashboardApiError(f"Network error: could not reach the API ({e!r}).") from e
        try:
            payload = resp.json()
        except ValueError as e:
            raise DashboardApiError(
                f"Invalid response from the API (HTTP {resp.status_code}).",
                resp.status_code,
            ) from e
        if isinstance(payload, dict) and payload.get("success") is False:
            error = payload.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise DashboardApiError(str(message or "API error"), resp.status_code)
        if resp.status_code >= 400:
            raise DashboardApiError(f"API error (HTTP {resp.status_code}).", resp.status_code)
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    # Public API -----------------------------------------------
    async def list_currencies(self) -> List[Dict[str, Any]]:
        return await self._request("currencies")

    async def list_currencies_safe(self) -> Optional[List[Dict[str, Any]]]:
        """Like ``list_currencies`` but returns None on failure (templates)."""
        try:
            return await self.list_currencies()
        except DashboardApiError as e:
            logger.warning("list_currencies failed: %s", e)
            return None

    async def get_rates(self, base: str) -> Dict[str, Any]:
        return await self._request("rates", {"base": base})

    async def convert(self, amount: Decimal | float, from_code: str, to_code: str) -> Dict[str, Any]:
        return await self._request(
            "convert", {"amount": str(amount), "from": from_code, "to": to_code}
        )

    async def get_historical(
        self, from_code: str, to_code: str, start: str, end: str
    ) -> Dict[str, Any]:
        return await self._request(
            "historical", {"from": from_code, "to": to_code, "start": start, "end": end}
        )
