"""FastAPI application hosting the Telegram bot and the payment webhook."""

import sys
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException, Depends
from pydantic import ValidationError
from typing import Optional
from bitmart_bot import __version__
from bitmart_bot.models.config import Settings
from bitmart_bot.models.deposit import DepositNotification
from bitmart_bot.bot.telegram_bot import TelegramBot
from bitmart_bot.integrations.bitmart_client import BitMartClient
from bitmart_bot.integrations.payment_client import PaymentClient, verify_webhook_signature
from bitmart_bot.utils.deposit_store import DepositStore
from bitmart_bot.utils.logger import setup_logging, get_logger
from bitmart_bot.utils.health import health_checker

# Global variables for dependency injection
settings: Optional[Settings] = None
telegram_bot: Optional[TelegramBot] = None
bitmart_client: Optional[BitMartClient] = None
payment_client: Optional[PaymentClient] = None
deposit_store: Optional[DepositStore] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global settings, telegram_bot, bitmart_client, payment_client, deposit_store

    settings = Settings()
    setup_logging(log_level=settings.log_level)
    logger.info("Starting BitMart Telegram bot application")

    bitmart_client = BitMartClient(
        api_key=settings.bitmart_api_key,
        api_secret=settings.bitmart_api_secret,
        api_memo=settings.bitmart_api_memo,
        base_url=settings.bitmart_base_url,
        futures_base_url=settings.bitmart_futures_base_url
    )

    if settings.payments_enabled:
        payment_client = PaymentClient(
            api_key=settings.payment_api_key,
            base_url=settings.payment_base_url
        )
        deposit_store = DepositStore(settings.database_path)
    else:
        logger.warning("No payment API key configured, deposit commands disabled")

    telegram_bot = TelegramBot(
        settings=settings,
        bitmart_client=bitmart_client,
        payment_client=payment_client,
        deposit_store=deposit_store
    )

    await telegram_bot.application.initialize()

    if settings.webhook_mode:
        if await telegram_bot.set_webhook(settings.telegram_webhook_url):
            logger.info("Webhook mode enabled")
        else:
            logger.error("Failed to set webhook, check configuration")
    else:
        logger.info("No webhook URL configured, using long polling")
        await telegram_bot.start_polling()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down BitMart Telegram bot application")

    if settings.webhook_mode:
        await telegram_bot.remove_webhook()
    else:
        await telegram_bot.stop_polling()

    await telegram_bot.application.shutdown()

    await bitmart_client.close()
    if payment_client:
        await payment_client.close()
    if deposit_store:
        deposit_store.close()

    logger.info("Application shutdown complete")


app = FastAPI(
    title="BitMart Telegram Bot",
    description="Telegram bot relaying commands to the BitMart API and issuing deposit addresses",
    version=__version__,
    lifespan=lifespan
)

logger = get_logger(__name__)


def get_settings() -> Settings:
    """Dependency to get settings."""
    return settings


def get_telegram_bot() -> TelegramBot:
    """Dependency to get Telegram bot."""
    return telegram_bot


def get_deposit_store() -> Optional[DepositStore]:
    """Dependency to get the deposit store (None when payments are disabled)."""
    return deposit_store


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "BitMart Telegram Bot API",
        "version": __version__,
        "status": "running"
    }


@app.post("/webhook")
async def webhook(
    request: Request,
    bot: TelegramBot = Depends(get_telegram_bot)
):
    """Telegram webhook endpoint."""
    try:
        update_data = await request.json()
        logger.debug(f"Received webhook update: {update_data}")
        await bot.process_webhook_update(update_data)
        return {"status": "ok"}

    except Exception as e:
        logger.error(f"Webhook processing error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@app.post("/payments/webhook")
async def payment_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    bot: TelegramBot = Depends(get_telegram_bot),
    store: Optional[DepositStore] = Depends(get_deposit_store)
):
    """
    Payment processor notification endpoint.

    Looks up the deposit address in the store and notifies its owner.
    """
    if store is None:
        raise HTTPException(status_code=503, detail="Deposits are not configured")

    body = await request.body()

    if settings.payment_webhook_secret and not verify_webhook_signature(
        settings.payment_webhook_secret, body, request.headers.get("X-Signature")
    ):
        logger.warning("Rejected payment webhook with invalid signature")
        raise HTTPException(status_code=403, detail="Invalid signature")

    try:
        notification = DepositNotification.model_validate_json(body)
    except ValidationError as e:
        logger.warning(f"Invalid payment webhook payload: {e.errors()[:1]}")
        raise HTTPException(status_code=400, detail="Invalid notification payload")

    record = store.get_by_address(notification.address)
    if record is None:
        logger.warning(f"No user found for deposit address {notification.address}")
        return {"status": "ignored", "matched": False}

    try:
        await bot.notify_deposit(record, notification.format_message())
    except Exception as e:
        logger.error(f"Failed to notify user {record.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to deliver notification")

    return {"status": "ok", "matched": True}


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return health_checker.basic_health_check()


@app.get("/ready")
async def readiness_check(
    settings: Settings = Depends(get_settings),
    bot: TelegramBot = Depends(get_telegram_bot)
):
    """Readiness check for container orchestration."""
    checks = {
        "settings_loaded": settings is not None,
        "bot_initialized": bot is not None,
        "bitmart_configured": bool(settings and settings.bitmart_api_key and settings.bitmart_api_secret),
        "telegram_configured": bool(settings and settings.telegram_bot_token)
    }

    return {
        "ready": all(checks.values()),
        "checks": checks,
        "payments_enabled": bool(settings and settings.payments_enabled),
        "timestamp": health_checker.basic_health_check()["timestamp"]
    }


@app.get("/health/comprehensive")
async def comprehensive_health_check(settings: Settings = Depends(get_settings)):
    """Comprehensive health check of all dependencies."""
    if settings is None:
        raise HTTPException(status_code=503, detail="Application not initialized")

    cached_result = health_checker.get_cached_health()
    if cached_result:
        return cached_result

    return await health_checker.comprehensive_health_check(
        telegram_token=settings.telegram_bot_token,
        bitmart_url=settings.bitmart_base_url,
        payment_url=settings.payment_base_url,
        payment_key=settings.payment_api_key
    )


@app.get("/stats")
async def get_stats(
    bot: TelegramBot = Depends(get_telegram_bot),
    store: Optional[DepositStore] = Depends(get_deposit_store)
):
    """Get bot statistics."""
    if bot is None:
        raise HTTPException(status_code=503, detail="Application not initialized")

    return {
        "bot_stats": bot.get_stats(),
        "deposit_addresses": store.count() if store else None
    }


def run() -> None:
    """Console entry point: validate settings and serve the app with uvicorn."""
    try:
        app_settings = Settings()
    except ValidationError as e:
        missing = [str(err["loc"][0]) for err in e.errors()]
        print(f"Missing or invalid configuration: {', '.join(missing)}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(
        "bitmart_bot.main:app",
        host=app_settings.host,
        port=app_settings.port,
        log_level=app_settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
