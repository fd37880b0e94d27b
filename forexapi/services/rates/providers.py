from __future__ import annotations

"""Concrete forex providers and factory.

'frankfurter' talks to the Frankfurter API (ECB reference rates, no key);
'static' serves a fixed EUR-based cross table for offline development.
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from forexapi.core.config import Settings
from forexapi.core.errors import ProviderBadResponse, ProviderUnavailable, RateNotFound
from forexapi.models import ForexPoint
from forexapi.services.date_range import iter_days
from forexapi.services.http_client import (
    HttpDecodeError,
    HttpStatusError,
    HttpTransportError,
    get_json,
)

from .base import ForexProvider

logger = logging.getLogger("forexapi.providers")

# Units of currency per 1 EUR.
_STATIC_EUR_RATES: Dict[str, Decimal] = {
    "EUR": Decimal("1"),
    "USD": Decimal("1.087"),
    "GBP": Decimal("0.857"),
    "CHF": Decimal("0.955"),
    "JPY": Decimal("162.4"),
    "SEK": Decimal("11.32"),
    "NOK": Decimal("11.65"),
    "DKK": Decimal("7.46"),
    "PLN": Decimal("4.32"),
    "CZK": Decimal("25.1"),
    "CAD": Decimal("1.47"),
    "AUD": Decimal("1.65"),
}


class StaticForexProvider(ForexProvider):
    name = "static"

    def __init__(self, eur_rates: Optional[Dict[str, Decimal]] = None):
        self._rates = dict(eur_rates or _STATIC_EUR_RATES)

    def _cross(self, from_real: str, to_real: str) -> Decimal:
        from_real, to_real = from_real.upper(), to_real.upper()
        if from_real == to_real:
            return Decimal(1)
        try:
            return self._rates[to_real] / self._rates[from_real]
        except KeyError as e:
            raise RateNotFound(
                f"Exchange rate not available for {from_real} to {to_real}."
            ) from e

    async def latest_rate(self, from_real: str, to_real: str) -> Decimal:
        return self._cross(from_real, to_real)

    async def historical_rates(
        self, from_real: str, to_real: str, start: date, end: date
    ) -> List[ForexPoint]:
        rate = self._cross(from_real, to_real)
        return [ForexPoint(date=d, rate=rate) for d in iter_days(start, end)]


def _parse_rate(value: Any, context: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ProviderBadResponse(f"Non-numeric rate {value!r} for {context}.")
    try:
        rate = Decimal(str(value))
    except InvalidOperation as e:
        raise ProviderBadResponse(f"Non-numeric rate {value!r} for {context}.", e) from e
    if not rate.is_finite():
        raise ProviderBadResponse(f"Non-finite rate {value!r} for {context}.")
    return rate


class FrankfurterForexProvider(ForexProvider):
    """HTTP provider for ``/latest`` and ``/{start}..{end}`` endpoints."""

    name = "frankfurter"

    def __init__(
        self,
        base_url: str = "https://api.frankfurter.app",
        *,
        timeout: float = 15.0,
        connect_timeout: float = 5.0,
        retries: int = 0,
        user_agent: str = "mnFOREX/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = str(base_url).rstrip("/")
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._retries = retries
        self._headers = {"User-Agent": user_agent}
        self._transport = transport

    async def _fetch(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            data = await get_json(
                url,
                params=params,
                timeout=self._timeout,
                connect_timeout=self._connect_timeout,
                retries=self._retries,
                headers=self._headers,
                transport=self._transport,
            )
        except HttpTransportError as e:
            raise ProviderUnavailable(
                f"Failed to fetch data from external API: {e}", e
            ) from e
        except HttpStatusError as e:
            raise ProviderBadResponse(
                f"External API returned HTTP {e.status_code}.", e
            ) from e
        except HttpDecodeError as e:
            raise ProviderBadResponse("Invalid JSON response from external API.", e) from e
        if not isinstance(data, dict):
            raise ProviderBadResponse("Unexpected JSON payload from external API.")
        return data

    async def latest_rate(self, from_real: str, to_real: str) -> Decimal:
        from_real, to_real = from_real.upper(), to_real.upper()
        if from_real == to_real:
            return Decimal(1)
        data = await self._fetch("latest", {"from": from_real, "to": to_real})
        rates = data.get("rates")
        if not isinstance(rates, dict) or to_real not in rates:
            raise RateNotFound(f"Exchange rate not available for {from_real} to {to_real}.")
        rate = _parse_rate(rates[to_real], f"{from_real}->{to_real}")
        logger.debug("latest %s->%s = %s", from_real, to_real, rate)
        return rate

    async def historical_rates(
        self, from_real: str, to_real: str, start: date, end: date
    ) -> List[ForexPoint]:
        from_real, to_real = from_real.upper(), to_real.upper()
        if from_real == to_real:
            return [ForexPoint(date=d, rate=Decimal(1)) for d in iter_days(start, end)]
        path = f"{start.isoformat()}..{end.isoformat()}"
        data = await self._fetch(path, {"from": from_real, "to": to_real})
        series = data.get("rates")
        if not isinstance(series, dict):
            raise RateNotFound(
                f"Historical rates not available for {from_real} to {to_real}."
            )
        points: List[ForexPoint] = []
        for raw_day, day_rates in series.items():
            # Days without the target code are skipped, not backfilled.
            if not isinstance(day_rates, dict) or to_real not in day_rates:
                continue
            try:
                day = date.fromisoformat(raw_day)
            except (TypeError, ValueError) as e:
                raise ProviderBadResponse(f"Invalid date key {raw_day!r} in series.", e) from e
            points.append(
                ForexPoint(day, _parse_rate(day_rates[to_real], f"{from_real}->{to_real}"))
            )
        points.sort(key=lambda p: p.date)
        return points


def make_forex_provider(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> ForexProvider:
    kind = settings.forex_provider
    if kind == "static":
        return StaticForexProvider()
    if kind == "frankfurter":
        return FrankfurterForexProvider(
            str(settings.forex_api_base_url),
            timeout=settings.http_timeout_seconds,
            connect_timeout=settings.http_connect_timeout_seconds,
            retries=settings.http_retries,
            user_agent=settings.http_user_agent,
            transport=transport,
        )
    raise ValueError(f"Unknown forex provider kind '{kind}'")
