"""Configuration models for the BitMart Telegram bot."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Telegram Bot Configuration
    telegram_bot_token: str = Field(..., min_length=1, alias="TELEGRAM_BOT_TOKEN")
    telegram_webhook_url: Optional[str] = Field(default=None, alias="TELEGRAM_WEBHOOK_URL")

    # BitMart Configuration
    bitmart_api_key: str = Field(..., min_length=1, alias="BITMART_API_KEY")
    bitmart_api_secret: str = Field(..., min_length=1, alias="BITMART_API_SECRET")
    bitmart_api_memo: Optional[str] = Field(default=None, alias="BITMART_API_MEMO")
    bitmart_base_url: str = Field(default="https://api-cloud.bitmart.com", alias="BITMART_BASE_URL")
    bitmart_futures_base_url: str = Field(default="https://api-cloud-v2.bitmart.com", alias="BITMART_FUTURES_BASE_URL")

    # Payment processor Configuration
    payment_api_key: Optional[str] = Field(default=None, alias="PAYMENT_API_KEY")
    payment_base_url: str = Field(default="https://api.payments.example/v1", alias="PAYMENT_BASE_URL")
    payment_webhook_secret: Optional[str] = Field(default=None, alias="PAYMENT_WEBHOOK_SECRET")

    # Storage
    database_path: str = Field(default="data/deposits.db", alias="DATABASE_PATH")

    # Application Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def payments_enabled(self) -> bool:
        """Deposit commands and the payment webhook need an API key."""
        return bool(self.payment_api_key)

    @property
    def webhook_mode(self) -> bool:
        return bool(self.telegram_webhook_url)
