"""Unit tests for TelegramBot command handlers."""

import json
import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram import Message, Update, User

from bitmart_bot.bot.telegram_bot import PAYMENTS_DISABLED_MESSAGE, TelegramBot
from bitmart_bot.integrations.bitmart_client import BitMartAPIError, BitMartClient
from bitmart_bot.integrations.payment_client import PaymentAPIError, PaymentClient
from bitmart_bot.models.deposit import DepositAddress, DepositRecord
from bitmart_bot.models.trading import FuturesSide


def replies(update) -> list:
    return [call.args[0] for call in update.message.reply_text.call_args_list]


@pytest.fixture
def bitmart():
    client = MagicMock(spec=BitMartClient)
    client.extract_balances = BitMartClient.extract_balances
    return client


@pytest.fixture
def payments():
    return MagicMock(spec=PaymentClient)


@pytest.fixture
def bot(settings, bitmart, payments, deposit_store):
    return TelegramBot(
        settings=settings,
        bitmart_client=bitmart,
        payment_client=payments,
        deposit_store=deposit_store,
    )


class TestStartAndHelp:
    """Tests for /start and /help."""

    @pytest.mark.asyncio
    async def test_start_greets_by_first_name(self, bot, make_update):
        update = make_update("/start", first_name="Bob")
        await bot._start_command(update, None)
        assert replies(update)[0].startswith("Hello Bob! Available commands:")

    @pytest.mark.asyncio
    async def test_start_without_first_name(self, bot, make_update):
        update = make_update("/start", first_name=None)
        await bot._start_command(update, None)
        assert replies(update)[0].startswith("Hello trader!")

    @pytest.mark.asyncio
    async def test_help_lists_commands(self, bot, make_update):
        update = make_update("/help")
        await bot._help_command(update, None)
        assert "/withdraw CURRENCY address amount" in replies(update)[0]

    @pytest.mark.asyncio
    async def test_stats_counts_every_command(self, bot, make_update):
        await bot._start_command(make_update("/start"), None)
        await bot._help_command(make_update("/help"), None)
        update = make_update("/stats")

        await bot._stats_command(update, None)

        assert replies(update)[0].startswith("Bot Statistics")
        assert "Commands processed: 3" in replies(update)[0]
        assert "Errors: 0" in replies(update)[0]


class TestBalance:
    """Tests for /balance."""

    @pytest.mark.asyncio
    async def test_lists_non_zero_balances(self, bot, bitmart, make_update):
        bitmart.get_account_balances = AsyncMock(return_value={
            "code": 1000,
            "data": {"wallet": [
                {"currency": "BTC", "available": "0.5", "frozen": "0.1"},
                {"currency": "ETH", "available": "0", "frozen": "0"},
                {"currency": "USDT", "available": "0", "frozen": "12"},
            ]},
        })
        update = make_update("/balance")
        await bot._dispatch_command(update, None)
        assert replies(update) == ["BTC: available=0.5 frozen=0.1\nUSDT: available=0 frozen=12"]

    @pytest.mark.asyncio
    async def test_no_non_zero_balances(self, bot, bitmart, make_update):
        bitmart.get_account_balances = AsyncMock(return_value={"code": 1000, "data": {"wallet": []}})
        update = make_update("/balance")
        await bot._dispatch_command(update, None)
        assert replies(update) == ["No non-zero balances found."]

    @pytest.mark.asyncio
    async def test_error_is_reported(self, bot, bitmart, make_update):
        bitmart.get_account_balances = AsyncMock(side_effect=BitMartAPIError("BitMart API error 30005: bad sign"))
        update = make_update("/balance")
        await bot._dispatch_command(update, None)
        assert replies(update) == ["Error fetching balances: BitMart API error 30005: bad sign"]
        assert bot.get_stats()["errors"] == 1


class TestOrders:
    """Tests for spot, withdraw and futures commands."""

    @pytest.mark.asyncio
    async def test_spot_buy_relays_raw_response(self, bot, bitmart, make_update):
        response = {"code": 1000, "message": "OK", "data": {"order_id": "1"}}
        bitmart.submit_spot_order = AsyncMock(return_value=response)
        update = make_update("/spot-buy BTC_USDT buy 0.001 30000")

        await bot._dispatch_command(update, None)

        params = bitmart.submit_spot_order.await_args.args[0]
        assert params.to_payload() == {
            "symbol": "BTC_USDT", "side": "buy", "type": "limit", "size": "0.001", "price": "30000"
        }
        assert replies(update) == ["Spot order response: " + json.dumps(response)]

    @pytest.mark.asyncio
    async def test_spot_sell_underscore_spelling(self, bot, bitmart, make_update):
        bitmart.submit_spot_order = AsyncMock(return_value={"code": 1000})
        update = make_update("/spot_sell@TestBot BTC_USDT sell 0.001 35000")

        await bot._dispatch_command(update, None)

        assert replies(update)[0].startswith("Spot sell response: ")

    @pytest.mark.asyncio
    async def test_spot_usage_makes_no_call(self, bot, bitmart, make_update):
        bitmart.submit_spot_order = AsyncMock()
        update = make_update("/spot-buy BTC_USDT buy")

        await bot._dispatch_command(update, None)

        bitmart.submit_spot_order.assert_not_awaited()
        assert replies(update)[0].startswith("Usage: /spot-buy SYMBOL side size price")

    @pytest.mark.asyncio
    async def test_spot_error(self, bot, bitmart, make_update):
        bitmart.submit_spot_order = AsyncMock(side_effect=BitMartAPIError("insufficient balance"))
        update = make_update("/spot-sell BTC_USDT sell 1 35000")

        await bot._dispatch_command(update, None)

        assert replies(update) == ["Error placing spot sell: insufficient balance"]

    @pytest.mark.asyncio
    async def test_withdraw(self, bot, bitmart, make_update):
        bitmart.submit_withdrawal = AsyncMock(return_value={"code": 1000, "data": {"withdraw_id": "w"}})
        update = make_update("/withdraw USDT TXabc 10")

        await bot._dispatch_command(update, None)

        params = bitmart.submit_withdrawal.await_args.args[0]
        assert (params.currency, params.address, params.amount) == ("USDT", "TXabc", "10")
        assert replies(update)[0].startswith("Withdraw response: ")

    @pytest.mark.asyncio
    async def test_withdraw_error(self, bot, bitmart, make_update):
        bitmart.submit_withdrawal = AsyncMock(side_effect=BitMartAPIError("address not whitelisted"))
        update = make_update("/withdraw USDT TXabc 10")

        await bot._dispatch_command(update, None)

        assert replies(update) == ["Error submitting withdrawal: address not whitelisted"]

    @pytest.mark.asyncio
    async def test_futures_order(self, bot, bitmart, make_update):
        bitmart.submit_futures_order = AsyncMock(return_value={"code": 1000, "data": {"order_id": 5}})
        update = make_update("/futures-order BTCUSDT Long 1 30000")

        await bot._dispatch_command(update, None)

        params = bitmart.submit_futures_order.await_args.args[0]
        assert params.side is FuturesSide.OPEN_LONG
        assert replies(update)[0].startswith("Futures order response: ")

    @pytest.mark.asyncio
    async def test_futures_error(self, bot, bitmart, make_update):
        bitmart.submit_futures_order = AsyncMock(side_effect=RuntimeError("boom"))
        update = make_update("/futures-order BTCUSDT buy 1 30000")

        await bot._dispatch_command(update, None)

        assert replies(update) == ["Error placing futures order: boom"]

    @pytest.mark.asyncio
    async def test_unknown_command_ignored(self, bot, make_update):
        update = make_update("/unknown stuff")
        await bot._dispatch_command(update, None)
        update.message.reply_text.assert_not_awaited()
        assert bot.get_stats()["commands_processed"] == 0


def telegram_update(bot: TelegramBot, text: str) -> Update:
    """Build an Update the way Telegram delivers it, command entity included."""
    # Telegram ends the command entity at the first character outside [A-Za-z0-9_], bar an @botname suffix
    entity = re.match(r"/\w*(@\w+)?", text, re.ASCII)
    return Update.de_json(
        {
            "update_id": 1,
            "message": {
                "message_id": 1,
                "date": 0,
                "chat": {"id": 1000, "type": "private"},
                "from": {"id": 42, "is_bot": False, "first_name": "Alice", "username": "alice"},
                "text": text,
                "entities": [{"type": "bot_command", "offset": 0, "length": entity.end()}],
            },
        },
        bot.application.bot,
    )


async def route(bot: TelegramBot, update: Update) -> bool:
    """Run the first registered handler that accepts the update."""
    for handler in bot.application.handlers[0]:
        check = handler.check_update(update)
        if check is not None and check is not False:
            await handler.callback(update, None)
            return True
    return False


class TestHandlerRouting:
    """Tests for the handlers registered on the Application."""

    @pytest.fixture(autouse=True)
    def bot_identity(self, bot):
        object.__setattr__(
            bot.application.bot, "_bot_user", User(id=1, first_name="Test", is_bot=True, username="TestBot")
        )

    @pytest.fixture
    def reply_text(self):
        with patch.object(Message, "reply_text", new_callable=AsyncMock) as mock:
            yield mock

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        "/spot-buy BTC_USDT buy 0.001 30000",
        "/spot_buy BTC_USDT buy 0.001 30000",
        "/spot-buy@TestBot BTC_USDT buy 0.001 30000",
        "/spot_buy@TestBot BTC_USDT buy 0.001 30000",
        "/Spot-Buy BTC_USDT buy 0.001 30000",
    ])
    async def test_spot_buy_spellings(self, bot, bitmart, reply_text, text):
        bitmart.submit_spot_order = AsyncMock(return_value={"code": 1000})

        assert await route(bot, telegram_update(bot, text))

        bitmart.submit_spot_order.assert_awaited_once()
        assert reply_text.await_args.args[0].startswith("Spot order response: ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["/futures-order BTCUSDT long 1 30000", "/FUTURES_ORDER BTCUSDT long 1 30000"])
    async def test_futures_order_spellings(self, bot, bitmart, reply_text, text):
        bitmart.submit_futures_order = AsyncMock(return_value={"code": 1000})

        assert await route(bot, telegram_update(bot, text))

        bitmart.submit_futures_order.assert_awaited_once()
        assert reply_text.await_args.args[0].startswith("Futures order response: ")

    @pytest.mark.asyncio
    async def test_command_for_another_bot_ignored(self, bot, bitmart, reply_text):
        bitmart.submit_spot_order = AsyncMock()

        assert not await route(bot, telegram_update(bot, "/spot_sell@OtherBot BTC_USDT sell 1 35000"))

        bitmart.submit_spot_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hyphen_prefix_of_longer_word_ignored(self, bot, bitmart, reply_text):
        bitmart.submit_spot_order = AsyncMock()

        assert not await route(bot, telegram_update(bot, "/spot-buying BTC_USDT buy 1 30000"))

        bitmart.submit_spot_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stats_routed(self, bot, reply_text):
        assert await route(bot, telegram_update(bot, "/stats"))
        assert "Commands processed: 1" in reply_text.await_args.args[0]


class TestDeposits:
    """Tests for /deposit and /mydeposit."""

    @pytest.mark.asyncio
    async def test_deposit_issues_and_stores_address(self, bot, payments, deposit_store, make_update):
        payments.create_deposit_address = AsyncMock(
            return_value=DepositAddress(address="TXaddr", currency="USDT", network="TRC20")
        )
        update = make_update("/deposit usdt trc20", user_id=42, chat_id=1000)

        await bot._dispatch_command(update, None)

        request = payments.create_deposit_address.await_args.args[0]
        assert (request.currency, request.network, request.user_id) == ("USDT", "TRC20", 42)
        stored = deposit_store.get_by_address("TXaddr")
        assert (stored.user_id, stored.chat_id, stored.username) == (42, 1000, "alice")
        assert replies(update) == ["Your USDT (TRC20) deposit address:\nTXaddr"]

    @pytest.mark.asyncio
    async def test_deposit_error(self, bot, payments, deposit_store, make_update):
        payments.create_deposit_address = AsyncMock(side_effect=PaymentAPIError("Payment API error: 500 - oops"))
        update = make_update("/deposit USDT")

        await bot._dispatch_command(update, None)

        assert replies(update) == ["Error creating deposit address: Payment API error: 500 - oops"]
        assert deposit_store.count() == 0

    @pytest.mark.asyncio
    async def test_deposit_usage(self, bot, payments, make_update):
        payments.create_deposit_address = AsyncMock()
        update = make_update("/deposit")

        await bot._dispatch_command(update, None)

        payments.create_deposit_address.assert_not_awaited()
        assert replies(update)[0].startswith("Usage: /deposit CURRENCY [network]")

    @pytest.mark.asyncio
    async def test_my_deposit(self, bot, deposit_store, make_update):
        deposit_store.save(DepositRecord(user_id=42, chat_id=1000, currency="BTC", address="bc1q"))
        update = make_update("/mydeposit", user_id=42)

        await bot._dispatch_command(update, None)

        assert replies(update) == ["Your BTC deposit address:\nbc1q"]

    @pytest.mark.asyncio
    async def test_my_deposit_none(self, bot, make_update):
        update = make_update("/mydeposit", user_id=7)
        await bot._dispatch_command(update, None)
        assert replies(update)[0].startswith("No deposit address yet.")

    @pytest.mark.asyncio
    async def test_deposits_disabled(self, settings, bitmart, make_update):
        bot = TelegramBot(settings=settings, bitmart_client=bitmart)
        update = make_update("/deposit USDT")

        await bot._dispatch_command(update, None)

        assert replies(update) == [PAYMENTS_DISABLED_MESSAGE]


class TestNotify:
    """Tests for outbound notifications."""

    @pytest.mark.asyncio
    async def test_notify_deposit_sends_to_record_chat(self, bot):
        bot.application = MagicMock()
        bot.application.bot.send_message = AsyncMock()
        record = DepositRecord(user_id=42, chat_id=1000, currency="USDT", address="TXaddr")

        await bot.notify_deposit(record, "Deposit received: 10 USDT")

        bot.application.bot.send_message.assert_awaited_once_with(chat_id=1000, text="Deposit received: 10 USDT")
        assert bot.get_stats()["deposits_notified"] == 1
