from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExchangeDirection(str, Enum):
    """How ``exchange_rate`` relates one real unit to one custom unit."""

    REAL_TO_CUSTOM = "real_to_custom"  # 1 real = rate custom
    CUSTOM_TO_REAL = "custom_to_real"  # 1 custom = rate real


class CurrencyRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1)
    name: str
    symbol: str = ""
    country: str = ""
    subdivision: str = ""
    exchange_rate: Decimal = Field(..., ge=0)
    real_currency: str = Field(..., min_length=1)
    direction: ExchangeDirection = ExchangeDirection.REAL_TO_CUSTOM

    @field_validator("code", "real_currency")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("currency code must not be blank")
        return v

    @property
    def base_rate(self) -> Decimal:
        """Value of one custom unit expressed in its real currency."""
        if self.direction is ExchangeDirection.CUSTOM_TO_REAL:
            return self.exchange_rate
        if self.exchange_rate == 0:
            return Decimal(0)
        return Decimal(1) / self.exchange_rate

    def public_view(self) -> dict:
        return {
            "name": self.name,
            "code": self.code,
            "symbol": self.symbol,
            "country": self.country,
            "subdivision": self.subdivision,
            "exchange_rate": float(self.exchange_rate),
            "direction": self.direction.value,
            "real_currency": self.real_currency,
        }
