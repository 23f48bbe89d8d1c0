"""Slash-command parsing for the BitMart Telegram bot."""

import re
from dataclasses import dataclass, field
from typing import List, Optional
from pydantic import ValidationError
from bitmart_bot.models.trading import SpotOrderParams, WithdrawParams, FuturesOrderParams
from bitmart_bot.models.deposit import DepositAddressRequest

TELEGRAM_MESSAGE_LIMIT = 4096

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CommandSpec:
    """Argument layout and help text of one command."""

    name: str
    min_args: int
    usage: str
    example: str
    description: str

    @property
    def usage_message(self) -> str:
        return f"Usage: /{self.usage}\nExample: /{self.example}"


COMMANDS = {
    spec.name: spec
    for spec in [
        CommandSpec("balance", 0, "balance", "balance", "Show non-zero spot balances"),
        CommandSpec(
            "spot-buy", 4, "spot-buy SYMBOL side size price",
            "spot-buy BTC_USDT buy 0.001 30000", "Place a spot limit order"
        ),
        CommandSpec(
            "spot-sell", 4, "spot-sell SYMBOL side size price",
            "spot-sell BTC_USDT sell 0.001 35000", "Place a spot limit order"
        ),
        CommandSpec(
            "withdraw", 3, "withdraw CURRENCY address amount",
            "withdraw USDT Txxxx 10", "Withdraw to an on-chain address"
        ),
        CommandSpec(
            "futures-order", 4, "futures-order SYMBOL side size price",
            "futures-order BTCUSDT buy 1 30000", "Place a futures limit order"
        ),
        CommandSpec(
            "deposit", 1, "deposit CURRENCY [network]",
            "deposit USDT TRC20", "Get a deposit address"
        ),
        CommandSpec("mydeposit", 0, "mydeposit", "mydeposit", "Show your stored deposit address"),
    ]
}


class CommandUsageError(ValueError):
    """Raised when a command line does not fit its command's arguments."""

    def __init__(self, spec: CommandSpec, reason: Optional[str] = None):
        self.spec = spec
        self.reason = reason
        super().__init__(reason or spec.usage_message)

    @property
    def user_message(self) -> str:
        if self.reason:
            return f"{self.reason}\n{self.spec.usage_message}"
        return self.spec.usage_message


@dataclass
class ParsedCommand:
    """A command name and its whitespace-separated arguments."""

    name: str
    args: List[str] = field(default_factory=list)


def parse_command(text: str) -> Optional[ParsedCommand]:
    """
    Split a slash-command line into name and arguments.

    The name loses its leading slash and any @botname suffix, is lower-cased
    and has underscores normalized to hyphens, so /spot_buy@MyBot and
    /spot-buy are the same command.

    Args:
        text: Raw message text

    Returns:
        ParsedCommand, or None if the text is not a command
    """
    if not text:
        return None

    parts = _WHITESPACE.split(text.strip())
    if not parts[0].startswith("/") or len(parts[0]) == 1:
        return None

    name = parts[0][1:].split("@", 1)[0].lower().replace("_", "-")
    return ParsedCommand(name=name, args=parts[1:])


def _require_args(command: ParsedCommand, name: str) -> CommandSpec:
    spec = COMMANDS[name]
    if len(command.args) < spec.min_args:
        raise CommandUsageError(spec)
    return spec


def _validation_reason(error: ValidationError) -> str:
    first = error.errors()[0]
    message = first.get("msg", "invalid value")
    # pydantic prefixes custom ValueError messages
    return "Invalid input: " + message.replace("Value error, ", "")


def build_spot_order(command: ParsedCommand) -> SpotOrderParams:
    """Build spot order params from /spot-buy or /spot-sell arguments."""
    spec = _require_args(command, command.name)
    symbol, side, size, price = command.args[:4]
    try:
        return SpotOrderParams(symbol=symbol, side=side, size=size, price=price)
    except ValidationError as e:
        raise CommandUsageError(spec, _validation_reason(e)) from e


def build_withdrawal(command: ParsedCommand) -> WithdrawParams:
    """Build withdrawal params from /withdraw arguments."""
    spec = _require_args(command, "withdraw")
    currency, address, amount = command.args[:3]
    try:
        return WithdrawParams(currency=currency, address=address, amount=amount)
    except ValidationError as e:
        raise CommandUsageError(spec, _validation_reason(e)) from e


def build_futures_order(command: ParsedCommand) -> FuturesOrderParams:
    """Build futures order params from /futures-order arguments."""
    spec = _require_args(command, "futures-order")
    symbol, side, size, price = command.args[:4]
    try:
        return FuturesOrderParams(symbol=symbol, side=side.lower(), size=size, price=price)
    except ValidationError as e:
        raise CommandUsageError(spec, _validation_reason(e)) from e


def build_deposit_request(
    command: ParsedCommand,
    user_id: int,
    chat_id: int,
    username: Optional[str] = None
) -> DepositAddressRequest:
    """Build a deposit address request from /deposit arguments."""
    spec = _require_args(command, "deposit")
    network = command.args[1] if len(command.args) > 1 else None
    try:
        return DepositAddressRequest(
            user_id=user_id,
            chat_id=chat_id,
            username=username,
            currency=command.args[0],
            network=network
        )
    except ValidationError as e:
        raise CommandUsageError(spec, _validation_reason(e)) from e


def get_help_message(payments_enabled: bool = True) -> str:
    """List available commands with usage and examples."""
    lines = ["Available commands:", "/start - Show this greeting", "/help - Show this help"]
    for spec in COMMANDS.values():
        if spec.name in ("deposit", "mydeposit") and not payments_enabled:
            continue
        lines.append(f"/{spec.usage} - {spec.description}")
        if spec.example != spec.usage:
            lines.append(f"    e.g. /{spec.example}")
    lines.append("/stats - Show bot statistics")
    return "\n".join(lines)


def get_start_message(first_name: Optional[str], payments_enabled: bool = True) -> str:
    """Greeting sent on /start."""
    commands = [
        f"/{spec.usage}"
        for spec in COMMANDS.values()
        if payments_enabled or spec.name not in ("deposit", "mydeposit")
    ]
    return f"Hello {first_name or 'trader'}! Available commands:\n" + "\n".join(commands)


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> List[str]:
    """
    Split text into chunks that fit in a single Telegram message.

    Prefers newline boundaries and falls back to a hard cut.
    """
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text
    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(remaining[:cut])
        remaining = remaining[cut:].lstrip("\n")
    if remaining:
        chunks.append(remaining)
    return chunks
