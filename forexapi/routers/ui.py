from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from forexapi.core.config import Settings
from forexapi.services.chart_utils import summarize_series
from forexapi.services.dashboard_client import CurrencyApiClient, DashboardApiError
from forexapi.services.date_range import CHART_RANGES, chart_window

router = APIRouter(tags=["ui"])

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

# Host used for in-process calls; never resolved.
_IN_PROCESS_BASE = "http://dashboard.internal/api"


def get_api_client(request: Request) -> CurrencyApiClient:
    settings: Settings = request.app.state.settings
    if settings.dashboard_api_base_url:
        return CurrencyApiClient(
            str(settings.dashboard_api_base_url),
            timeout=settings.http_timeout_seconds,
            user_agent=settings.http_user_agent,
        )
    return CurrencyApiClient(
        _IN_PROCESS_BASE,
        timeout=settings.http_timeout_seconds,
        user_agent=settings.http_user_agent,
        transport=httpx.ASGITransport(app=request.app),
    )


def _base_context(request: Request, page: str) -> Dict[str, Any]:
    settings: Settings = request.app.state.settings
    return {
        "request": request,
        "site_name": settings.site_name,
        "version": settings.version,
        "current_page": page,
    }


async def _load_chart(
    api: CurrencyApiClient, from_code: str, to_code: str, range_key: str, today
) -> Dict[str, Any]:
    start, end = chart_window(range_key, today)
    chart: Dict[str, Any] = {
        "from": from_code,
        "to": to_code,
        "range": range_key,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "rates": [],
        "summary": None,
        "error": None,
    }
    try:
        data = await api.get_historical(from_code, to_code, chart["start"], chart["end"])
    except DashboardApiError as e:
        chart["error"] = str(e)
        return chart
    chart["rates"] = data.get("rates", [])
    chart["summary"] = summarize_series(chart["rates"])
    return chart


@router.get("/ui", response_class=HTMLResponse)
async def ui_home(
    request: Request,
    from_code: Optional[str] = Query(None, alias="from"),
    to_code: Optional[str] = Query(None, alias="to"),
    range_key: Optional[str] = Query(None, alias="range"),
    api: CurrencyApiClient = Depends(get_api_client),
):
    """Dashboard home: historical chart for a pair plus the rates table."""
    settings: Settings = request.app.state.settings
    today = request.app.state.clock().date()
    from_code = (from_code or settings.dashboard_base_currency).upper()
    to_code = (to_code or settings.dashboard_target_currency).upper()
    range_key = (range_key or settings.dashboard_chart_range).upper()

    currencies = await api.list_currencies_safe()
    chart = await _load_chart(api, from_code, to_code, range_key, today)

    rates_error = None
    rates: Dict[str, Any] = {"base": settings.dashboard_rates_base, "rates": {}}
    try:
        rates = await api.get_rates(settings.dashboard_rates_base)
    except DashboardApiError as e:
        rates_error = str(e)

    context = _base_context(request, "home")
    context.update(
        {
            "currencies": currencies or [],
            "currencies_error": currencies is None,
            "chart": chart,
            "chart_ranges": CHART_RANGES,
            "rates": rates,
            "rates_error": rates_error,
        }
    )
    return templates.TemplateResponse(request, "home.html", context)


@router.get("/ui/currencies", response_class=HTMLResponse)
async def ui_currencies(request: Request, api: CurrencyApiClient = Depends(get_api_client)):
    currencies = await api.list_currencies_safe()
    context = _base_context(request, "currencies")
    context.update(
        {
            "currencies": currencies or [],
            "error": None if currencies is not None else "Currency data could not be loaded.",
        }
    )
    return templates.TemplateResponse(request, "currencies.html", context)


@router.get("/ui/convert", response_class=HTMLResponse)
async def ui_convert(
    request: Request,
    amount: Optional[str] = Query(None),
    from_code: Optional[str] = Query(None, alias="from"),
    to_code: Optional[str] = Query(None, alias="to"),
    api: CurrencyApiClient = Depends(get_api_client),
):
    """Calculator page; converts server-side when the form was submitted."""
    settings: Settings = request.app.state.settings
    currencies = await api.list_currencies_safe()
    form = {
        "amount": amount or "1",
        "from": (from_code or settings.dashboard_base_currency).upper(),
        "to": (to_code or settings.dashboard_target_currency).upper(),
    }
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    if amount is not None:
        try:
            result = await api.convert(form["amount"], form["from"], form["to"])
        except DashboardApiError as e:
            error = str(e)

    context = _base_context(request, "convert")
    context.update(
        {
            "currencies": currencies or [],
            "form": form,
            "result": result,
            "error": error,
        }
    )
    return templates.TemplateResponse(request, "convert.html", context)


@router.get("/ui/historical.json")
async def ui_historical_json(
    request: Request,
    from_code: str = Query(..., alias="from"),
    to_code: str = Query(..., alias="to"),
    range_key: str = Query("1Y", alias="range"),
    api: CurrencyApiClient = Depends(get_api_client),
):
    """Chart data for the home page script when the pair or range changes."""
    today = request.app.state.clock().date()
    chart = await _load_chart(api, from_code.upper(), to_code.upper(), range_key.upper(), today)
    status_code = 200 if chart["error"] is None else 502
    return JSONResponse(status_code=status_code, content=chart)


def currency_options(currencies: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    return [{"code": c["code"], "label": f"{c['code']} - {c['name']}"} for c in currencies]


templates.env.globals["currency_options"] = currency_options
