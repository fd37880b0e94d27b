"""Rate resolution engine and its collaborators."""

from .base import CurrencyRegistry, ForexProvider
from .engine import PairRateCache, RateEngine
from .providers import FrankfurterForexProvider, StaticForexProvider, make_forex_provider
from .registry import InMemoryCurrencyRegistry, SqliteCurrencyRegistry

__all__ = [
    "CurrencyRegistry",
    "ForexProvider",
    "PairRateCache",
    "RateEngine",
    "FrankfurterForexProvider",
    "StaticForexProvider",
    "make_forex_provider",
    "InMemoryCurrencyRegistry",
    "SqliteCurrencyRegistry",
]
