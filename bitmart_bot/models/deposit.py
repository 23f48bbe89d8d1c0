"""Deposit address models for the payment processor integration."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DepositAddressRequest(BaseModel):
    """Request for a new deposit address on behalf of a Telegram user."""

    user_id: int = Field(..., description="Telegram user ID")
    chat_id: int = Field(..., description="Telegram chat to notify")
    username: Optional[str] = Field(None, description="Telegram username")
    currency: str = Field(..., min_length=1, description="Currency to deposit")
    network: Optional[str] = Field(None, description="Blockchain network, e.g. TRC20")

    @field_validator("currency", "network")
    @classmethod
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @property
    def order_id(self) -> str:
        return f"tg-{self.user_id}"


class DepositAddress(BaseModel):
    """Address returned by the payment processor."""

    address: str = Field(..., min_length=1)
    currency: str
    network: Optional[str] = None


class DepositRecord(BaseModel):
    """One stored row: the current deposit address of a user."""

    user_id: int
    chat_id: int
    username: Optional[str] = None
    currency: str
    network: Optional[str] = None
    address: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def formatted_response(self) -> str:
        """Generate a formatted reply for Telegram."""
        network = f" ({self.network})" if self.network else ""
        return f"Your {self.currency}{network} deposit address:\n{self.address}"


class DepositNotification(BaseModel):
    """Inbound payment processor notification about a deposit."""

    address: str = Field(..., min_length=1)
    amount: str
    currency: str
    txid: Optional[str] = None
    status: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_text(cls, value):
        return str(value) if isinstance(value, (int, float)) else value

    def format_message(self) -> str:
        lines = [f"Deposit received: {self.amount} {self.currency}"]
        lines.append(f"Address: {self.address}")
        if self.txid:
            lines.append(f"Transaction: {self.txid}")
        if self.status:
            lines.append(f"Status: {self.status}")
        return "\n".join(lines)
