"""Shared fixtures: a small currency registry, a scripted forex provider and an app."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from forexapi.core.config import Settings
from forexapi.core.errors import RateNotFound
from forexapi.db.seed import seed_currencies
from forexapi.main import create_app
from forexapi.models import CurrencyRecord, ExchangeDirection, ForexPoint
from forexapi.services.date_range import iter_days
from forexapi.services.rates import ForexProvider, InMemoryCurrencyRegistry, RateEngine

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_record(code, name, rate, real, direction) -> CurrencyRecord:
    return CurrencyRecord(
        code=code,
        name=name,
        symbol=code[0],
        country=f"{name} land",
        subdivision="100 cents",
        exchange_rate=Decimal(rate),
        real_currency=real,
        direction=direction,
    )


C2R = ExchangeDirection.CUSTOM_TO_REAL
R2C = ExchangeDirection.REAL_TO_CUSTOM


def sample_records() -> List[CurrencyRecord]:
    return [
        make_record("VYR", "Vyrian Crown", "2.0", "USD", C2R),
        make_record("IRE", "Irenic Mark", "0.5", "USD", R2C),
        make_record("AVE", "Avenian Florin", "0.8", "EUR", R2C),
        make_record("BEL", "Belorian Thaler", "1.1", "EUR", C2R),
        make_record("SOV", "Sovereign Pound", "10.5", "GBP", C2R),
    ]


class ScriptedForexProvider(ForexProvider):
    """Forex provider answering from fixed tables and recording every call."""

    name = "scripted"

    def __init__(self):
        self.latest: Dict[Tuple[str, str], Decimal] = {
            ("USD", "EUR"): Decimal("0.92"),
            ("EUR", "USD"): Decimal("1.087"),
            ("USD", "GBP"): Decimal("0.79"),
            ("GBP", "USD"): Decimal("1.27"),
            ("EUR", "GBP"): Decimal("0.857"),
            ("GBP", "EUR"): Decimal("1.167"),
        }
        self.series: Dict[Tuple[str, str], List[ForexPoint]] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.latest_calls: List[Tuple[str, str]] = []
        self.historical_calls: List[Tuple[str, str, date, date]] = []

    async def latest_rate(self, from_real: str, to_real: str) -> Decimal:
        self.latest_calls.append((from_real, to_real))
        await asyncio.sleep(0)
        if (from_real, to_real) in self.failures:
            raise self.failures[(from_real, to_real)]
        if from_real == to_real:
            return Decimal(1)
        try:
            return self.latest[(from_real, to_real)]
        except KeyError as e:
            raise RateNotFound(f"Exchange rate not available for {from_real} to {to_real}.") from e

    async def historical_rates(
        self, from_real: str, to_real: str, start: date, end: date
    ) -> List[ForexPoint]:
        self.historical_calls.append((from_real, to_real, start, end))
        if (from_real, to_real) in self.failures:
            raise self.failures[(from_real, to_real)]
        if (from_real, to_real) in self.series:
            return [p for p in self.series[(from_real, to_real)] if start <= p.date <= end]
        rate = self.latest[(from_real, to_real)]
        return [ForexPoint(d, rate) for d in iter_days(start, end)]


@pytest.fixture
def records() -> List[CurrencyRecord]:
    return sample_records()


@pytest.fixture
def provider() -> ScriptedForexProvider:
    return ScriptedForexProvider()


@pytest.fixture
def registry(records) -> InMemoryCurrencyRegistry:
    return InMemoryCurrencyRegistry(records)


@pytest.fixture
def engine(registry, provider) -> RateEngine:
    return RateEngine(registry, provider, clock=fixed_clock)


@pytest.fixture
def db_path(tmp_path: Path, records) -> Path:
    path = tmp_path / "currencies.sqlite3"
    seed_currencies(path, records)
    return path


def build_settings(db_path: Path, **overrides) -> Settings:
    values = {
        "db_path": db_path,
        "forex_provider": "static",
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app_factory(db_path, provider):
    def _make(provider_override: Optional[ForexProvider] = None, **overrides):
        return create_app(
            settings_override=build_settings(db_path, **overrides),
            forex_provider=provider_override or provider,
            clock=fixed_clock,
        )

    return _make


@pytest.fixture
def client(app_factory) -> TestClient:
    return TestClient(app_factory())
