"""Utility modules for the BitMart Telegram bot."""

from .logger import setup_logging, get_logger
from .health import HealthChecker
from .deposit_store import DepositStore

__all__ = ["setup_logging", "get_logger", "HealthChecker", "DepositStore"]
