"""Telegram front end for BitMart trading and crypto deposit addresses."""

__version__ = "1.0.0"
