"""Telegram bot that relays slash-commands to BitMart and the payment processor."""

import json
import re
from typing import Optional, Dict, Any, Callable, Awaitable
from telegram import Update, Bot
from telegram.ext import Application, MessageHandler, CommandHandler, ContextTypes, filters
from bitmart_bot.models.config import Settings
from bitmart_bot.models.deposit import DepositRecord
from bitmart_bot.bot import command_parser
from bitmart_bot.bot.command_parser import CommandUsageError, ParsedCommand
from bitmart_bot.integrations.bitmart_client import BitMartClient, BitMartAPIError
from bitmart_bot.integrations.payment_client import PaymentClient, PaymentAPIError
from bitmart_bot.utils.deposit_store import DepositStore
from bitmart_bot.utils.logger import get_logger, get_structured_logger

logger = get_logger(__name__)
structured_logger = get_structured_logger(__name__)

PAYMENTS_DISABLED_MESSAGE = "Deposits are not configured."

# Telegram command names cannot contain "-", so these arrive as plain text
HYPHENATED_COMMANDS = re.compile(r"^/(spot-buy|spot-sell|futures-order)(@\w+)?(\s|$)", re.IGNORECASE)


def _error_text(error: Exception) -> str:
    if isinstance(error, (BitMartAPIError, PaymentAPIError)):
        return error.message
    return str(error) or error.__class__.__name__


class TelegramBot:
    """Telegram bot forwarding trading and deposit commands to REST APIs."""

    def __init__(
        self,
        settings: Settings,
        bitmart_client: BitMartClient,
        payment_client: Optional[PaymentClient] = None,
        deposit_store: Optional[DepositStore] = None
    ):
        self.settings = settings
        self.bitmart_client = bitmart_client
        self.payment_client = payment_client
        self.deposit_store = deposit_store

        # Initialize bot application
        self.application = Application.builder().token(settings.telegram_bot_token).build()

        self._routes: Dict[str, Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]] = {
            "balance": self._balance_command,
            "spot-buy": self._spot_order_command,
            "spot-sell": self._spot_order_command,
            "withdraw": self._withdraw_command,
            "futures-order": self._futures_order_command,
            "deposit": self._deposit_command,
            "mydeposit": self._my_deposit_command,
        }

        self._setup_handlers()

        # Bot statistics
        self.stats = {
            "commands_processed": 0,
            "requests_sent": 0,
            "deposits_notified": 0,
            "errors": 0
        }

    @property
    def payments_enabled(self) -> bool:
        return self.payment_client is not None and self.deposit_store is not None

    def _setup_handlers(self):
        """Setup Telegram bot handlers."""
        self.application.add_handler(CommandHandler("start", self._start_command))
        self.application.add_handler(CommandHandler("help", self._help_command))
        self.application.add_handler(CommandHandler("stats", self._stats_command))

        # Underscore spellings are valid Telegram commands and show up in the command menu
        self.application.add_handler(
            CommandHandler(
                ["balance", "spot_buy", "spot_sell", "withdraw", "futures_order", "deposit", "mydeposit"],
                self._dispatch_command
            )
        )
        self.application.add_handler(
            MessageHandler(filters.Regex(HYPHENATED_COMMANDS), self._dispatch_command)
        )

        self.application.add_error_handler(self._error_handler)

    async def _reply(self, update: Update, text: str) -> None:
        for chunk in command_parser.split_message(text):
            await update.message.reply_text(chunk)

    async def _dispatch_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Route a command to its handler by normalized name."""
        if not update.message or not update.message.text:
            return

        command = command_parser.parse_command(update.message.text)
        handler = self._routes.get(command.name) if command else None
        if handler is None:
            return

        self.stats["commands_processed"] += 1
        await handler(update, context)

    async def _start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start command."""
        self.stats["commands_processed"] += 1
        user = update.effective_user
        await self._reply(
            update,
            command_parser.get_start_message(user.first_name if user else None, self.payments_enabled)
        )
        logger.info(f"Start command from user {user.id if user else 'unknown'}")

    async def _help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /help command."""
        self.stats["commands_processed"] += 1
        await self._reply(update, command_parser.get_help_message(self.payments_enabled))

    async def _stats_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /stats command."""
        self.stats["commands_processed"] += 1
        stats_message = (
            "Bot Statistics\n\n"
            f"Commands processed: {self.stats['commands_processed']}\n"
            f"API requests sent: {self.stats['requests_sent']}\n"
            f"Deposit notifications: {self.stats['deposits_notified']}\n"
            f"Errors: {self.stats['errors']}"
        )
        await self._reply(update, stats_message)

    async def _run_request(
        self,
        update: Update,
        command: ParsedCommand,
        action: str,
        call: Callable[[], Awaitable[Dict[str, Any]]],
        success_prefix: str
    ) -> None:
        """Send one API request and relay the raw response or the error."""
        log = structured_logger.with_context(user_id=update.effective_user.id, command=command.name)
        try:
            self.stats["requests_sent"] += 1
            response = await call()
            await self._reply(update, success_prefix + json.dumps(response))
            log.info("Request completed")
        except Exception as e:
            self.stats["errors"] += 1
            log.error(f"{command.name} error: {e}", exc_info=True)
            await self._reply(update, f"Error {action}: {_error_text(e)}")

    async def _parse(self, update: Update, builder: Callable[[ParsedCommand], Any]):
        """Parse the message and build params, replying with usage on failure."""
        command = command_parser.parse_command(update.message.text)
        try:
            return command, builder(command)
        except CommandUsageError as e:
            await self._reply(update, e.user_message)
            return command, None

    async def _balance_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /balance: list non-zero wallet balances."""
        log = structured_logger.with_context(user_id=update.effective_user.id, command="balance")
        try:
            self.stats["requests_sent"] += 1
            response = await self.bitmart_client.get_account_balances()
            balances = [b for b in self.bitmart_client.extract_balances(response) if b.is_non_zero]
            if not balances:
                await self._reply(update, "No non-zero balances found.")
                return
            await self._reply(update, "\n".join(b.format_line() for b in balances))
            log.info(f"Listed {len(balances)} balances")
        except Exception as e:
            self.stats["errors"] += 1
            log.error(f"balance error: {e}", exc_info=True)
            await self._reply(update, f"Error fetching balances: {_error_text(e)}")

    async def _spot_order_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /spot-buy and /spot-sell."""
        command, params = await self._parse(update, command_parser.build_spot_order)
        if params is None:
            return

        if command.name == "spot-buy":
            action, prefix = "placing spot buy", "Spot order response: "
        else:
            action, prefix = "placing spot sell", "Spot sell response: "

        await self._run_request(
            update, command, action,
            lambda: self.bitmart_client.submit_spot_order(params),
            prefix
        )

    async def _withdraw_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /withdraw."""
        command, params = await self._parse(update, command_parser.build_withdrawal)
        if params is None:
            return

        await self._run_request(
            update, command, "submitting withdrawal",
            lambda: self.bitmart_client.submit_withdrawal(params),
            "Withdraw response: "
        )

    async def _futures_order_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /futures-order."""
        command, params = await self._parse(update, command_parser.build_futures_order)
        if params is None:
            return

        await self._run_request(
            update, command, "placing futures order",
            lambda: self.bitmart_client.submit_futures_order(params),
            "Futures order response: "
        )

    async def _deposit_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /deposit: issue, store and show a deposit address."""
        if not self.payments_enabled:
            await self._reply(update, PAYMENTS_DISABLED_MESSAGE)
            return

        user = update.effective_user
        chat_id = update.effective_chat.id
        command, request = await self._parse(
            update,
            lambda cmd: command_parser.build_deposit_request(cmd, user.id, chat_id, user.username)
        )
        if request is None:
            return

        log = structured_logger.with_context(user_id=user.id, command="deposit")
        try:
            self.stats["requests_sent"] += 1
            deposit_address = await self.payment_client.create_deposit_address(request)
            record = DepositRecord(
                user_id=user.id,
                chat_id=chat_id,
                username=user.username,
                currency=deposit_address.currency,
                network=deposit_address.network,
                address=deposit_address.address
            )
            self.deposit_store.save(record)
            await self._reply(update, record.formatted_response)
            log.info(f"Issued deposit address {record.address}")
        except Exception as e:
            self.stats["errors"] += 1
            log.error(f"deposit error: {e}", exc_info=True)
            await self._reply(update, f"Error creating deposit address: {_error_text(e)}")

    async def _my_deposit_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /mydeposit: show the stored deposit address."""
        if not self.payments_enabled:
            await self._reply(update, PAYMENTS_DISABLED_MESSAGE)
            return

        record = self.deposit_store.get_by_user(update.effective_user.id)
        if record is None:
            await self._reply(update, "No deposit address yet. Use /deposit CURRENCY to get one.")
            return
        await self._reply(update, record.formatted_response)

    async def _error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle errors in bot operations."""
        update_type = type(update).__name__ if update is not None else "unknown"
        logger.error(f"Bot error for {update_type}: {context.error}", exc_info=context.error)
        self.stats["errors"] += 1

    async def notify(self, chat_id: int, text: str) -> None:
        """
        Send a message to a chat outside of a command exchange.

        Args:
            chat_id: Target chat
            text: Message text
        """
        for chunk in command_parser.split_message(text):
            await self.application.bot.send_message(chat_id=chat_id, text=chunk)

    async def notify_deposit(self, record: DepositRecord, message: str) -> None:
        await self.notify(record.chat_id, message)
        self.stats["deposits_notified"] += 1
        logger.info(f"Notified user {record.user_id} about deposit to {record.address}")

    async def set_webhook(self, webhook_url: str) -> bool:
        """
        Set webhook for the bot.

        Args:
            webhook_url: URL for webhook endpoint

        Returns:
            True if webhook was set successfully
        """
        try:
            bot = Bot(token=self.settings.telegram_bot_token)
            await bot.set_webhook(url=webhook_url)
            logger.info(f"Webhook set to: {webhook_url}")
            return True
        except Exception as e:
            logger.error(f"Failed to set webhook: {e}")
            return False

    async def remove_webhook(self) -> bool:
        """Remove webhook for the bot."""
        try:
            bot = Bot(token=self.settings.telegram_bot_token)
            await bot.delete_webhook()
            logger.info("Webhook removed")
            return True
        except Exception as e:
            logger.error(f"Failed to remove webhook: {e}")
            return False

    async def process_webhook_update(self, update_data: Dict[str, Any]) -> None:
        """
        Process webhook update from Telegram.

        Args:
            update_data: Raw update data from webhook
        """
        update = Update.de_json(update_data, self.application.bot)
        if update:
            await self.application.process_update(update)

    async def start_polling(self) -> None:
        """Start bot in polling mode."""
        logger.info("Starting bot in polling mode")
        await self.application.start()
        await self.application.updater.start_polling()

    async def stop_polling(self) -> None:
        """Stop bot polling."""
        logger.info("Stopping bot polling")
        await self.application.updater.stop()
        await self.application.stop()

    def get_stats(self) -> Dict[str, Any]:
        """Get bot statistics."""
        return self.stats.copy()
