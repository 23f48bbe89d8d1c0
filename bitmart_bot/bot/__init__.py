"""Telegram bot modules."""

from .telegram_bot import TelegramBot
from .command_parser import parse_command, ParsedCommand, CommandUsageError

__all__ = ["TelegramBot", "parse_command", "ParsedCommand", "CommandUsageError"]
