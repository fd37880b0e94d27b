"""Domain models for the currency conversion API."""

from .currency import CurrencyRecord, ExchangeDirection
from .rates import (
    ForexPoint,
    RateEntry,
    RateFailure,
    RateQuote,
    RatesTable,
    SeriesPoint,
)

__all__ = [
    "CurrencyRecord",
    "ExchangeDirection",
    "ForexPoint",
    "RateEntry",
    "RateFailure",
    "RateQuote",
    "RatesTable",
    "SeriesPoint",
]
