from __future__ import annotations

"""Collaborator interfaces for the rate resolution engine.

The engine only needs read access to currency records and two forex
lookups; concrete stores and HTTP providers plug in behind these.
"""
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol, Sequence

from forexapi.models import CurrencyRecord, ForexPoint


class CurrencyRegistry(Protocol):
    def lookup(self, code: str) -> Optional[CurrencyRecord]: ...

    def list_all(self) -> Sequence[CurrencyRecord]: ...

    def list_all_except(self, code: str) -> Sequence[CurrencyRecord]: ...


class ForexProvider(ABC):
    name: str = "abstract"

    @abstractmethod
    async def latest_rate(self, from_real: str, to_real: str) -> Decimal:
        """Return units of ``to_real`` per 1 unit of ``from_real``."""
        raise NotImplementedError

    @abstractmethod
    async def historical_rates(
        self, from_real: str, to_real: str, start: date, end: date
    ) -> List[ForexPoint]:
        """Return the provider's observations for the inclusive window, by date."""
        raise NotImplementedError
