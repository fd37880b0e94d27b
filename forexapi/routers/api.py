from __future__ import annotations

"""Conversion API router.

Endpoints (all GET, JSON envelope ``{success, action, data}``):
    - /api/currencies                              -> list
    - /api/convert?amount=&from=&to=               -> convert
    - /api/rates?base=                             -> rates
    - /api/historical?from=&to=&start=&end=        -> historical
    - /api/?action=list|convert|rates|historical   -> same, query-dispatched
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from forexapi.core.config import Settings
from forexapi.core.errors import ConversionError, InvalidAmount
from forexapi.db.dal import Database
from forexapi.services.date_range import ensure_ordered, parse_iso_date
from forexapi.services.rates import RateEngine, SqliteCurrencyRegistry

router = APIRouter(prefix="/api", tags=["api"])

ACTIONS = ("list", "convert", "rates", "historical")

MAX_AMOUNT = Decimal("1e30")


class UnknownAction(ConversionError):
    status_code = 404
    error_type = "unknown_action"


class MissingParameter(ConversionError):
    error_type = "missing_parameter"


def get_engine(request: Request) -> RateEngine:
    settings: Settings = request.app.state.settings
    registry = SqliteCurrencyRegistry(Database(settings.db_path))
    return RateEngine(registry, request.app.state.forex_provider, request.app.state.clock)


def _ok(action: str, data: Any) -> Dict[str, Any]:
    return {"success": True, "action": action, "data": data}


def parse_amount(raw: str) -> Decimal:
    try:
        amount = Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as e:
        raise InvalidAmount("Parameter 'amount' must be a positive number.") from e
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount("Parameter 'amount' must be a positive number.")
    if amount >= MAX_AMOUNT:
        raise InvalidAmount("Parameter 'amount' is too large.")
    return amount


async def _do_list(engine: RateEngine) -> Dict[str, Any]:
    return _ok("list", await run_in_threadpool(engine.list_currencies))


async def _do_convert(
    engine: RateEngine, amount_raw: str, from_code: str, to_code: str
) -> Dict[str, Any]:
    amount = parse_amount(amount_raw)
    from_code, to_code = from_code.strip().upper(), to_code.strip().upper()
    result = await engine.convert(amount, from_code, to_code)
    return _ok(
        "convert",
        {
            "from": from_code,
            "to": to_code,
            "amount": float(amount),
            "result": float(result),
        },
    )


async def _do_rates(engine: RateEngine, base: str) -> Dict[str, Any]:
    table = await engine.get_rates(base.strip().upper())
    return _ok("rates", table.as_dict())


async def _do_historical(
    engine: RateEngine, from_code: str, to_code: str, start: str, end: str
) -> Dict[str, Any]:
    # Validate before any lookup so malformed ranges never reach the provider.
    start_day = parse_iso_date(start, "start")
    end_day = parse_iso_date(end, "end")
    ensure_ordered(start_day, end_day)
    from_code, to_code = from_code.strip().upper(), to_code.strip().upper()
    series = await engine.get_historical_rates(from_code, to_code, start_day, end_day)
    return _ok(
        "historical",
        {
            "from": from_code,
            "to": to_code,
            "start_date": start_day.isoformat(),
            "end_date": end_day.isoformat(),
            "rates": [p.as_dict() for p in series],
        },
    )


@router.get("/currencies", summary="List supported currencies")
async def list_currencies(engine: RateEngine = Depends(get_engine)):
    return await _do_list(engine)


@router.get("/convert", summary="Convert an amount between two currencies")
async def convert(
    amount: str = Query(..., description="Positive amount to convert"),
    from_code: str = Query(..., alias="from", description="Source currency code"),
    to_code: str = Query(..., alias="to", description="Target currency code"),
    engine: RateEngine = Depends(get_engine),
):
    return await _do_convert(engine, amount, from_code, to_code)


@router.get("/rates", summary="Rates of every currency against a base")
async def rates(
    base: str = Query(..., description="Base currency code"),
    engine: RateEngine = Depends(get_engine),
):
    return await _do_rates(engine, base)


@router.get("/historical", summary="Daily historical rates for a currency pair")
async def historical(
    from_code: str = Query(..., alias="from"),
    to_code: str = Query(..., alias="to"),
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    engine: RateEngine = Depends(get_engine),
):
    return await _do_historical(engine, from_code, to_code, start, end)


def _require(params: Dict[str, Optional[str]], action: str) -> Dict[str, str]:
    for name, value in params.items():
        if value is None or value == "":
            raise MissingParameter(
                f"Missing required parameter: '{name}' for action '{action}'."
            )
    return params  # type: ignore[return-value]


@router.get("/", summary="Query-dispatched access to every action")
async def dispatch(request: Request, engine: RateEngine = Depends(get_engine)):
    q = request.query_params
    action = q.get("action")
    available = ", ".join(ACTIONS)
    if not action:
        raise MissingParameter(
            f"Missing required parameter: 'action'. Available actions: {available}"
        )
    if action == "list":
        return await _do_list(engine)
    if action == "convert":
        p = _require({"amount": q.get("amount"), "from": q.get("from"), "to": q.get("to")}, action)
        return await _do_convert(engine, p["amount"], p["from"], p["to"])
    if action == "rates":
        p = _require({"base": q.get("base")}, action)
        return await _do_rates(engine, p["base"])
    if action == "historical":
        p = _require(
            {
                "from": q.get("from"),
                "to": q.get("to"),
                "start": q.get("start"),
                "end": q.get("end"),
            },
            action,
        )
        return await _do_historical(engine, p["from"], p["to"], p["start"], p["end"])
    raise UnknownAction(f"Unknown action: '{action}'. Available actions: {available}")
