#!/usr/bin/env python3
"""Development runner script for the BitMart Telegram bot."""

import sys
from pathlib import Path

from pydantic import ValidationError

from bitmart_bot.models.config import Settings
from bitmart_bot.utils.logger import setup_logging, get_logger


def main():
    """Main development runner."""
    print("🚀 Starting BitMart Telegram bot in development mode...")

    if not Path(".env").exists():
        print("❌ .env file not found!")
        print("📝 Please copy config/.env.example to .env and configure your settings:")
        print("   cp config/.env.example .env")
        return

    try:
        settings = Settings()
    except ValidationError as e:
        missing = [str(err["loc"][0]) for err in e.errors()]
        print(f"❌ Missing required environment variables: {', '.join(missing)}")
        print("📝 Please configure these in your .env file")
        return

    setup_logging(log_level=settings.log_level)
    logger = get_logger(__name__)

    logger.info("🔧 Development mode configuration:")
    logger.info(f"   Environment: {settings.environment}")
    logger.info(f"   Log Level: {settings.log_level}")
    logger.info(f"   Host: {settings.host}:{settings.port}")
    logger.info(f"   Webhook URL: {settings.telegram_webhook_url or 'Not configured (polling mode)'}")
    logger.info(f"   Deposits: {'enabled' if settings.payments_enabled else 'disabled'}")

    print("✅ Configuration looks good!")
    print("\n🔗 Available endpoints:")
    print(f"   Health Check: http://{settings.host}:{settings.port}/health")
    print(f"   API Docs: http://{settings.host}:{settings.port}/docs")
    if settings.payments_enabled:
        print(f"   Payment webhook: http://{settings.host}:{settings.port}/payments/webhook")

    print(f"\n🤖 Starting server on {settings.host}:{settings.port}...")
    print("   Press Ctrl+C to stop")

    import uvicorn
    uvicorn.run(
        "bitmart_bot.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n👋 Shutting down...")
    except Exception as e:
        print(f"❌ Unexpected error: {e}")
        sys.exit(1)
