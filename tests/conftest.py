"""Shared pytest fixtures for all test types."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from bitmart_bot.models.config import Settings
from bitmart_bot.utils.deposit_store import DepositStore


@pytest.fixture
def settings() -> Settings:
    """Settings with fake credentials, ignoring any local .env file."""
    return Settings(
        _env_file=None,
        TELEGRAM_BOT_TOKEN="123456:TEST-TOKEN",
        BITMART_API_KEY="test-key",
        BITMART_API_SECRET="test-secret",
        BITMART_API_MEMO="test-memo",
        PAYMENT_API_KEY="pay-key",
        PAYMENT_BASE_URL="https://pay.test/v1",
        PAYMENT_WEBHOOK_SECRET="hook-secret",
    )


@pytest.fixture
def deposit_store():
    """In-memory deposit store."""
    store = DepositStore(":memory:")
    yield store
    store.close()


def _make_update(text: str, user_id: int = 42, chat_id: int = 1000, first_name="Alice", username="alice"):
    """Build a mock Telegram update carrying a text message."""
    update = MagicMock()
    update.message.text = text
    update.message.reply_text = AsyncMock()
    update.effective_user.id = user_id
    update.effective_user.first_name = first_name
    update.effective_user.username = username
    update.effective_chat.id = chat_id
    return update


@pytest.fixture
def make_update():
    """Factory for mock Telegram updates."""
    return _make_update
