from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Union


@dataclass(frozen=True)
class ForexPoint:
    """One provider observation for a real-currency pair."""

    date: date
    rate: Decimal


@dataclass(frozen=True)
class SeriesPoint:
    date: date
    rate: Decimal

    def as_dict(self) -> dict:
        return {"date": self.date.isoformat(), "rate": float(self.rate)}


@dataclass(frozen=True)
class RateQuote:
    value: Decimal
    change: float
    timestamp: str

    def as_dict(self) -> dict:
        return {
            "value": float(self.value),
            "change": self.change,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RateFailure:
    error: str

    def as_dict(self) -> dict:
        return {"error": self.error}


RateEntry = Union[RateQuote, RateFailure]


@dataclass(frozen=True)
class RatesTable:
    base: str
    rates: Dict[str, RateEntry]

    def as_dict(self) -> dict:
        return {
            "base": self.base,
            "rates": {code: entry.as_dict() for code, entry in self.rates.items()},
        }

    def failures(self) -> List[str]:
        return [c for c, e in self.rates.items() if isinstance(e, RateFailure)]
