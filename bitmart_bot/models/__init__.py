"""Data models for the BitMart Telegram bot."""

from .config import Settings
from .trading import SpotOrderParams, WithdrawParams, FuturesOrderParams, Balance
from .deposit import DepositAddressRequest, DepositAddress, DepositRecord, DepositNotification

__all__ = [
    "Settings",
    "SpotOrderParams",
    "WithdrawParams",
    "FuturesOrderParams",
    "Balance",
    "DepositAddressRequest",
    "DepositAddress",
    "DepositRecord",
    "DepositNotification",
]
