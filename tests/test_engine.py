"""Tests for the rate resolution engine."""

import asyncio
import threading
from datetime import date
from decimal import Decimal

import pytest

from forexapi.core.errors import (
    CurrencyNotFound,
    InvalidDateRange,
    ProviderBadResponse,
    ProviderUnavailable,
    RateNotFound,
    ZeroRateTarget,
)
from forexapi.models import ForexPoint, RateFailure, RateQuote
from forexapi.services.money import round_half_up
from forexapi.services.rates import InMemoryCurrencyRegistry, RateEngine

from .conftest import C2R, R2C, fixed_clock, make_record


def run(coro):
    return asyncio.run(coro)


# convert ------------------------------------------------------------------


@pytest.mark.parametrize("amount", [Decimal("1"), Decimal("0.00001"), Decimal("12345.678912")])
@pytest.mark.parametrize("code", ["VYR", "IRE", "AVE", "BEL", "SOV"])
def test_convert_same_currency_is_identity(engine, provider, code, amount) -> None:
    assert run(engine.convert(amount, code, code)) == amount
    assert provider.latest_calls == []


def test_convert_same_currency_is_case_insensitive(engine, provider) -> None:
    assert run(engine.convert(Decimal("3.5"), "vyr", " VYR ")) == Decimal("3.5")
    assert provider.latest_calls == []


def test_convert_same_group_example(engine, provider) -> None:
    # VYR base 2.0, IRE base 1/0.5 = 2.0 -> rate 1.0
    assert run(engine.convert(10, "VYR", "IRE")) == Decimal("10.00000")
    assert provider.latest_calls == []


def test_convert_same_group_matches_base_ratio(engine, records, provider) -> None:
    by_code = {r.code: r for r in records}
    amount = Decimal("7.77")
    expected = round_half_up(
        amount * by_code["AVE"].base_rate / by_code["BEL"].base_rate, 5
    )
    assert run(engine.convert(amount, "AVE", "BEL")) == expected
    assert provider.latest_calls == []


def test_convert_cross_group_example(engine, provider) -> None:
    # (2.0 / 1.25) * 0.92 = 1.472 ; 5 * 1.472 = 7.36
    assert run(engine.convert(5, "VYR", "AVE")) == Decimal("7.36")
    assert provider.latest_calls == [("USD", "EUR")]


def test_convert_cross_group_uses_forex_formula(engine, records) -> None:
    by_code = {r.code: r for r in records}
    amount = Decimal("3")
    expected = round_half_up(
        amount * by_code["SOV"].base_rate / by_code["BEL"].base_rate * Decimal("1.167"), 5
    )
    assert run(engine.convert(amount, "SOV", "BEL")) == expected


def test_convert_rounds_half_away_from_zero() -> None:
    registry = InMemoryCurrencyRegistry(
        [
            make_record("AAA", "Alpha", "1.000005", "USD", C2R),
            make_record("BBB", "Beta", "1", "USD", C2R),
        ]
    )
    engine = RateEngine(registry, provider=None, clock=fixed_clock)  # type: ignore[arg-type]
    # 1.000005 sits exactly on the half; banker's rounding would give 1.00000.
    assert run(engine.convert(1, "AAA", "BBB")) == Decimal("1.00001")


@pytest.mark.parametrize("missing", [("XXX", "VYR"), ("VYR", "XXX"), ("XXX", "XXX")])
def test_convert_unknown_currency(engine, provider, missing) -> None:
    with pytest.raises(CurrencyNotFound):
        run(engine.convert(1, *missing))
    assert provider.latest_calls == []


def test_convert_zero_rate_target(records, provider) -> None:
    registry = InMemoryCurrencyRegistry(
        records + [make_record("ZER", "Zeroed Token", "0", "USD", R2C)]
    )
    engine = RateEngine(registry, provider, clock=fixed_clock)
    with pytest.raises(ZeroRateTarget):
        run(engine.convert(1, "VYR", "ZER"))
    # Zero rate as source is fine: it just converts to nothing.
    assert run(engine.convert(1, "ZER", "VYR")) == Decimal("0")


@pytest.mark.parametrize(
    "error",
    [
        ProviderUnavailable("connect timeout"),
        ProviderBadResponse("HTTP 500"),
        RateNotFound("Exchange rate not available for USD to GBP."),
    ],
)
def test_convert_surfaces_provider_errors(engine, provider, error) -> None:
    provider.failures[("USD", "GBP")] = error
    with pytest.raises(type(error)):
        run(engine.convert(1, "VYR", "SOV"))
    assert provider.latest_calls == [("USD", "GBP")]


def test_convert_does_not_cache_across_calls(engine, provider) -> None:
    run(engine.convert(1, "VYR", "AVE"))
    provider.latest[("USD", "EUR")] = Decimal("0.5")
    assert run(engine.convert(1, "VYR", "AVE")) == Decimal("0.8")
    assert provider.latest_calls == [("USD", "EUR"), ("USD", "EUR")]


# get_rates ----------------------------------------------------------------


def test_get_rates_lists_every_other_currency_in_name_order(engine) -> None:
    table = run(engine.get_rates("vyr"))
    assert table.base == "VYR"
    assert list(table.rates) == ["AVE", "BEL", "IRE", "SOV"]


def test_get_rates_values(engine) -> None:
    table = run(engine.get_rates("VYR"))
    assert table.rates["AVE"] == RateQuote(
        value=Decimal("1.4720"), change=0.0, timestamp="2024-05-01T12:00:00+00:00"
    )
    # 2.0 / 1.1 * 0.92 = 1.6727272.. -> 1.67273 -> 1.6727
    assert table.rates["BEL"].value == Decimal("1.6727")
    assert table.rates["IRE"].value == Decimal("1.0000")
    assert all(entry.change == 0.0 for entry in table.rates.values())


def test_get_rates_isolates_single_provider_failure(engine, provider) -> None:
    provider.failures[("USD", "GBP")] = ProviderUnavailable("connect timeout")
    table = run(engine.get_rates("VYR"))
    assert isinstance(table.rates["SOV"], RateFailure)
    assert table.rates["SOV"].error == "Exchange rate provider is temporarily unavailable."
    assert table.failures() == ["SOV"]
    for code in ("AVE", "BEL", "IRE"):
        assert isinstance(table.rates[code], RateQuote)


def test_get_rates_isolates_zero_rate_target(records, provider) -> None:
    registry = InMemoryCurrencyRegistry(
        records + [make_record("ZER", "Zeroed Token", "0", "USD", R2C)]
    )
    table = run(RateEngine(registry, provider, clock=fixed_clock).get_rates("VYR"))
    assert "zero value" in table.rates["ZER"].error
    assert len(table.rates) == 5


def test_get_rates_fetches_each_real_pair_once(records, provider) -> None:
    registry = InMemoryCurrencyRegistry(
        records
        + [
            make_record("CAR", "Carinthian Ducat", "3", "EUR", R2C),
            make_record("DAL", "Dalish Penny", "4", "EUR", C2R),
        ]
    )
    table = run(RateEngine(registry, provider, clock=fixed_clock).get_rates("VYR"))
    assert table.failures() == []
    # AVE, BEL, CAR, DAL all peg to EUR: one fetch. SOV: one GBP fetch.
    assert sorted(provider.latest_calls) == [("USD", "EUR"), ("USD", "GBP")]


def test_get_rates_unknown_base(engine) -> None:
    with pytest.raises(CurrencyNotFound):
        run(engine.get_rates("NOPE"))


def test_get_rates_serializes(engine, provider) -> None:
    provider.failures[("USD", "GBP")] = RateNotFound("Exchange rate not available for USD to GBP.")
    payload = run(engine.get_rates("VYR")).as_dict()
    assert payload["base"] == "VYR"
    assert payload["rates"]["AVE"] == {
        "value": 1.472,
        "change": 0.0,
        "timestamp": "2024-05-01T12:00:00+00:00",
    }
    assert payload["rates"]["SOV"] == {"error": "Exchange rate not available for USD to GBP."}


# get_historical_rates -----------------------------------------------------


def test_historical_same_currency_is_constant_one(engine, provider) -> None:
    series = run(engine.get_historical_rates("AVE", "AVE", date(2024, 2, 27), date(2024, 3, 2)))
    assert [p.date for p in series] == [
        date(2024, 2, 27),
        date(2024, 2, 28),
        date(2024, 2, 29),
        date(2024, 3, 1),
        date(2024, 3, 2),
    ]
    assert all(p.rate == Decimal("1.0") for p in series)
    assert provider.historical_calls == []


def test_historical_single_day(engine) -> None:
    series = run(engine.get_historical_rates("VYR", "VYR", "2024-01-01", "2024-01-01"))
    assert len(series) == 1


def test_historical_same_group_constant(engine, provider) -> None:
    series = run(engine.get_historical_rates("BEL", "AVE", date(2024, 1, 1), date(2024, 1, 3)))
    # 1.1 / 1.25 = 0.88
    assert [p.rate for p in series] == [Decimal("0.8800")] * 3
    assert provider.historical_calls == []


def test_historical_cross_group_follows_provider_dates(engine, provider) -> None:
    provider.series[("USD", "EUR")] = [
        ForexPoint(date(2024, 1, 2), Decimal("0.92")),
        ForexPoint(date(2024, 1, 3), Decimal("0.93")),
        # weekend gap
        ForexPoint(date(2024, 1, 8), Decimal("0.9")),
    ]
    series = run(engine.get_historical_rates("VYR", "AVE", date(2024, 1, 1), date(2024, 1, 8)))
    assert [(p.date, p.rate) for p in series] == [
        (date(2024, 1, 2), Decimal("1.4720")),
        (date(2024, 1, 3), Decimal("1.4880")),
        (date(2024, 1, 8), Decimal("1.4400")),
    ]
    assert provider.historical_calls == [("USD", "EUR", date(2024, 1, 1), date(2024, 1, 8))]


def test_historical_rejects_reversed_range_before_provider(engine, provider) -> None:
    with pytest.raises(InvalidDateRange):
        run(engine.get_historical_rates("VYR", "AVE", date(2024, 2, 1), date(2024, 1, 1)))
    with pytest.raises(InvalidDateRange):
        run(engine.get_historical_rates("VYR", "VYR", date(2024, 2, 1), date(2024, 1, 1)))
    assert provider.historical_calls == []


def test_historical_unknown_currency(engine) -> None:
    with pytest.raises(CurrencyNotFound):
        run(engine.get_historical_rates("VYR", "XXX", date(2024, 1, 1), date(2024, 1, 2)))


def test_historical_zero_rate_target(records, provider) -> None:
    registry = InMemoryCurrencyRegistry(
        records + [make_record("ZER", "Zeroed Token", "0", "USD", C2R)]
    )
    engine = RateEngine(registry, provider, clock=fixed_clock)
    with pytest.raises(ZeroRateTarget):
        run(engine.get_historical_rates("VYR", "ZER", date(2024, 1, 1), date(2024, 1, 2)))


def test_historical_provider_failure_is_fatal(engine, provider) -> None:
    provider.failures[("USD", "GBP")] = ProviderUnavailable("read timeout")
    with pytest.raises(ProviderUnavailable):
        run(engine.get_historical_rates("VYR", "SOV", date(2024, 1, 1), date(2024, 1, 2)))


# list_currencies ----------------------------------------------------------


def test_list_currencies_projects_public_fields(engine) -> None:
    listing = engine.list_currencies()
    assert [c["code"] for c in listing] == ["AVE", "BEL", "IRE", "SOV", "VYR"]
    assert listing[0] == {
        "name": "Avenian Florin",
        "code": "AVE",
        "symbol": "A",
        "country": "Avenian Florin land",
        "subdivision": "100 cents",
        "exchange_rate": 0.8,
        "direction": "real_to_custom",
        "real_currency": "EUR",
    }


def test_get_rates_isolates_unexpected_errors(engine, provider) -> None:
    provider.failures[("USD", "GBP")] = RuntimeError("provider bug")
    table = run(engine.get_rates("VYR"))
    assert table.failures() == ["SOV"]
    assert table.rates["SOV"].error == "Exchange rate could not be determined."
    assert "provider bug" not in table.rates["SOV"].error
    assert isinstance(table.rates["AVE"], RateQuote)


def test_convert_large_amount_keeps_every_digit(engine) -> None:
    amount = Decimal("123456789012345678901234")
    assert run(engine.convert(amount, "VYR", "IRE")) == amount
    # 123456789012345678901234.5 * 1.472
    assert run(engine.convert(Decimal("123456789012345678901234.5"), "VYR", "AVE")) == Decimal(
        "181728393426172839342617.18400"
    )


def test_historical_series_may_end_on_last_representable_day(engine) -> None:
    series = run(engine.get_historical_rates("VYR", "VYR", "9999-12-30", "9999-12-31"))
    assert [p.date for p in series] == [date(9999, 12, 30), date.max]


def test_registry_reads_run_off_the_event_loop_thread(records, provider) -> None:
    threads = []

    class RecordingRegistry(InMemoryCurrencyRegistry):
        def lookup(self, code):
            threads.append(threading.get_ident())
            return super().lookup(code)

        def list_all_except(self, code):
            threads.append(threading.get_ident())
            return super().list_all_except(code)

    engine = RateEngine(RecordingRegistry(records), provider, clock=fixed_clock)
    run(engine.convert(1, "VYR", "AVE"))
    run(engine.get_rates("VYR"))
    assert len(threads) == 4
    assert threading.main_thread().ident not in threads
