from __future__ import annotations

"""Rate resolution engine.

Resolves conversion rates between any two registered currencies:

    - same code          -> identity, no lookup
    - same real currency -> from_base / to_base, no provider call
    - different groups   -> from_base / to_base * forex(real_from, real_to)

Every public operation builds its own ``PairRateCache`` so a forex pair is
fetched at most once per operation and nothing leaks between requests.
"""
import asyncio
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Tuple

from forexapi.core.errors import (
    ConversionError,
    CurrencyNotFound,
    ProviderError,
    ZeroRateTarget,
)
from forexapi.models import (
    CurrencyRecord,
    RateEntry,
    RateFailure,
    RateQuote,
    RatesTable,
    SeriesPoint,
)
from forexapi.services.date_range import ensure_ordered, iter_days, parse_iso_date
from forexapi.services.money import (
    CONVERSION_PLACES,
    RATE_PLACES,
    Number,
    round_half_up,
    to_decimal,
    working_context,
)

from .base import CurrencyRegistry, ForexProvider

logger = logging.getLogger("forexapi.engine")

Clock = Callable[[], datetime]

UNEXPECTED_RATE_ERROR = "Exchange rate could not be determined."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_code(code: str) -> str:
    return code.strip().upper()


class PairRateCache:
    """Memo of latest forex rates for one engine operation.

    Concurrent lookups of the same pair await one shared in-flight task.
    """

    def __init__(self, provider: ForexProvider):
        self._provider = provider
        self._tasks: Dict[Tuple[str, str], asyncio.Future] = {}
        self.fetch_count = 0

    async def latest(self, from_real: str, to_real: str) -> Decimal:
        key = (from_real, to_real)
        task = self._tasks.get(key)
        if task is None:
            self.fetch_count += 1
            task = asyncio.ensure_future(self._provider.latest_rate(from_real, to_real))
            self._tasks[key] = task
        return await asyncio.shield(task)


class RateEngine:
    def __init__(
        self,
        registry: CurrencyRegistry,
        provider: ForexProvider,
        clock: Clock = utc_now,
    ):
        self._registry = registry
        self._provider = provider
        self._clock = clock

    # Internal --------------------------------------------------
    async def _resolve(self, code: str) -> CurrencyRecord:
        # Registry reads may block (SQLite); keep them off the event loop.
        record = await asyncio.to_thread(self._registry.lookup, normalize_code(code))
        if record is None:
            raise CurrencyNotFound(f"Currency '{normalize_code(code)}' not found.")
        return record

    @staticmethod
    def _group_ratio(from_info: CurrencyRecord, to_info: CurrencyRecord) -> Decimal:
        to_base = to_info.base_rate
        if to_base == 0:
            raise ZeroRateTarget(
                f"Exchange rate for target currency {to_info.code} results in zero value."
            )
        return from_info.base_rate / to_base

    async def _convert_records(
        self,
        amount: Decimal,
        from_info: CurrencyRecord,
        to_info: CurrencyRecord,
        cache: PairRateCache,
    ) -> Decimal:
        if from_info.code == to_info.code:
            return amount
        rate = self._group_ratio(from_info, to_info)
        if from_info.real_currency != to_info.real_currency:
            forex = await cache.latest(from_info.real_currency, to_info.real_currency)
            rate = rate * forex
        with working_context():
            value = amount * rate
        return round_half_up(value, CONVERSION_PLACES)

    # Public API -----------------------------------------------
    def list_currencies(self) -> List[dict]:
        return [record.public_view() for record in self._registry.list_all()]

    async def convert(self, amount: Number, from_code: str, to_code: str) -> Decimal:
        """Convert ``amount`` and round to 5 places, half away from zero.

        Same-code conversions return ``amount`` untouched.
        """
        from_info = await self._resolve(from_code)
        to_info = await self._resolve(to_code)
        if from_info.code == to_info.code:
            return to_decimal(amount)
        cache = PairRateCache(self._provider)
        return await self._convert_records(to_decimal(amount), from_info, to_info, cache)

    async def get_rates(self, base_code: str) -> RatesTable:
        base_info = await self._resolve(base_code)
        targets = await asyncio.to_thread(self._registry.list_all_except, base_info.code)
        timestamp = self._clock().isoformat(timespec="seconds")
        cache = PairRateCache(self._provider)

        async def _entry(target: CurrencyRecord) -> RateEntry:
            try:
                value = await self._convert_records(Decimal(1), base_info, target, cache)
            except ConversionError as e:
                if isinstance(e, ProviderError):
                    logger.warning(
                        "rate %s->%s unavailable: %s", base_info.code, target.code, e
                    )
                return RateFailure(error=e.public_message)
            except Exception:
                logger.exception("rate %s->%s failed unexpectedly", base_info.code, target.code)
                return RateFailure(error=UNEXPECTED_RATE_ERROR)
            return RateQuote(
                value=round_half_up(value, RATE_PLACES), change=0.0, timestamp=timestamp
            )

        entries = await asyncio.gather(*(_entry(t) for t in targets))
        table = RatesTable(
            base=base_info.code,
            rates={t.code: e for t, e in zip(targets, entries)},
        )
        logger.debug(
            "rates for %s: %d entries, %d forex fetches, %d failures",
            base_info.code,
            len(targets),
            cache.fetch_count,
            len(table.failures()),
        )
        return table

    async def get_historical_rates(
        self,
        from_code: str,
        to_code: str,
        start: date | str,
        end: date | str,
    ) -> List[SeriesPoint]:
        from_info = await self._resolve(from_code)
        to_info = await self._resolve(to_code)
        start_day = parse_iso_date(start, "start")
        end_day = parse_iso_date(end, "end")
        ensure_ordered(start_day, end_day)

        if from_info.code == to_info.code:
            return [SeriesPoint(d, Decimal("1.0")) for d in iter_days(start_day, end_day)]

        ratio = self._group_ratio(from_info, to_info)
        if from_info.real_currency == to_info.real_currency:
            constant = round_half_up(ratio, RATE_PLACES)
            return [SeriesPoint(d, constant) for d in iter_days(start_day, end_day)]

        observations = await self._provider.historical_rates(
            from_info.real_currency, to_info.real_currency, start_day, end_day
        )
        return [
            SeriesPoint(p.date, round_half_up(ratio * p.rate, RATE_PLACES))
            for p in observations
        ]

