"""Exchange request models for BitMart spot, wallet and futures endpoints."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator


class OrderSide(str, Enum):
    """Spot order sides."""
    BUY = "buy"
    SELL = "sell"


class FuturesSide(int, Enum):
    """BitMart futures order sides (hedge mode)."""
    OPEN_LONG = 1
    CLOSE_SHORT = 2
    CLOSE_LONG = 3
    OPEN_SHORT = 4


FUTURES_SIDE_ALIASES = {
    "buy": FuturesSide.OPEN_LONG,
    "long": FuturesSide.OPEN_LONG,
    "open_long": FuturesSide.OPEN_LONG,
    "close_short": FuturesSide.CLOSE_SHORT,
    "close_long": FuturesSide.CLOSE_LONG,
    "sell": FuturesSide.OPEN_SHORT,
    "short": FuturesSide.OPEN_SHORT,
    "open_short": FuturesSide.OPEN_SHORT,
}

WITHDRAW_DESTINATION = "To Digital Address"


def _positive_decimal(value: str, field: str) -> str:
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{field} must be a number, got '{value}'")
    if not number.is_finite() or number <= 0:
        raise ValueError(f"{field} must be greater than zero")
    return str(value)


class SpotOrderParams(BaseModel):
    """Parameters for a limit order on the spot market."""

    symbol: str = Field(..., description="Trading pair, e.g. BTC_USDT")
    side: OrderSide = Field(..., description="buy or sell")
    type: str = Field(default="limit", description="Order type")
    size: str = Field(..., description="Order quantity in base currency")
    price: str = Field(..., description="Limit price in quote currency")

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return value.upper()

    @field_validator("side", mode="before")
    @classmethod
    def _lower_side(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("size", "price")
    @classmethod
    def _check_amount(cls, value: str, info) -> str:
        return _positive_decimal(value, info.field_name)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "type": self.type,
            "size": self.size,
            "price": self.price,
        }


class WithdrawParams(BaseModel):
    """Parameters for a withdrawal to an on-chain address."""

    currency: str = Field(..., description="Currency (optionally with network), e.g. USDT-TRC20")
    address: str = Field(..., min_length=1, description="Destination address")
    amount: str = Field(..., description="Amount to withdraw")
    address_memo: Optional[str] = Field(default=None, description="Memo / tag for the address")

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: str) -> str:
        return _positive_decimal(value, "amount")

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "currency": self.currency,
            "amount": self.amount,
            "destination": WITHDRAW_DESTINATION,
            "address": self.address,
        }
        if self.address_memo:
            payload["address_memo"] = self.address_memo
        return payload


class FuturesOrderParams(BaseModel):
    """Parameters for a limit order on the USDT-margined futures market."""

    symbol: str = Field(..., description="Contract symbol, e.g. BTCUSDT")
    side: FuturesSide = Field(..., description="BitMart numeric side 1-4")
    type: str = Field(default="limit", description="Order type")
    size: int = Field(..., gt=0, description="Number of contracts")
    price: str = Field(..., description="Limit price")

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return value.upper()

    @field_validator("side", mode="before")
    @classmethod
    def _map_side(cls, value: Union[str, int]) -> Union[FuturesSide, int]:
        if isinstance(value, str):
            key = value.strip().lower()
            if key.isdigit():
                return int(key)
            if key not in FUTURES_SIDE_ALIASES:
                raise ValueError(
                    f"unknown futures side '{value}' "
                    f"(use one of: {', '.join(FUTURES_SIDE_ALIASES)} or 1-4)"
                )
            return FUTURES_SIDE_ALIASES[key]
        return value

    @field_validator("price")
    @classmethod
    def _check_price(cls, value: str) -> str:
        return _positive_decimal(value, "price")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": int(self.side),
            "type": self.type,
            "size": self.size,
            "price": self.price,
        }


class Balance(BaseModel):
    """A single wallet balance line."""

    currency: str
    available: str = "0"
    frozen: str = "0"

    @field_validator("available", "frozen", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if value is None:
            return "0"
        return str(value) if isinstance(value, (int, float, Decimal)) else value

    @property
    def total(self) -> Decimal:
        try:
            return Decimal(self.available or "0") + Decimal(self.frozen or "0")
        except InvalidOperation:
            return Decimal("0")

    @property
    def is_non_zero(self) -> bool:
        return self.total > 0

    def format_line(self) -> str:
        return f"{self.currency}: available={self.available} frozen={self.frozen}"
