"""Health check utilities for monitoring application status."""

import asyncio
import httpx
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone
from bitmart_bot import __version__
from bitmart_bot.utils.logger import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthChecker:
    """Health checker for monitoring external dependencies."""

    def __init__(self, check_interval: timedelta = timedelta(minutes=5)):
        self.last_checks = {}
        self.check_interval = check_interval

    async def check_telegram_api(self, bot_token: str) -> Dict[str, Any]:
        """Check Telegram Bot API connectivity."""
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(f"https://api.telegram.org/bot{bot_token}/getMe")
                if response.status_code == 200 and response.json().get("ok"):
                    return {
                        "status": "healthy",
                        "response_time_ms": response.elapsed.total_seconds() * 1000,
                        "bot_username": response.json().get("result", {}).get("username")
                    }

                return {
                    "status": "unhealthy",
                    "error": f"API returned status {response.status_code}"
                }
        except Exception as e:
            # The exception text can contain the token-bearing URL
            logger.error(f"Telegram API health check failed: {type(e).__name__}")
            return {
                "status": "unhealthy",
                "error": type(e).__name__
            }

    async def check_bitmart_api(self, base_url: str) -> Dict[str, Any]:
        """Check BitMart public API connectivity via /system/time."""
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(f"{base_url.rstrip('/')}/system/time")

                if response.status_code == 200 and response.json().get("code") == 1000:
                    return {
                        "status": "healthy",
                        "response_time_ms": response.elapsed.total_seconds() * 1000
                    }

                return {
                    "status": "unhealthy",
                    "error": f"API returned status {response.status_code}",
                    "response": response.text[:200]
                }
        except Exception as e:
            logger.error(f"BitMart API health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    async def check_payment_api(self, base_url: str, api_key: Optional[str]) -> Dict[str, Any]:
        """Check payment processor connectivity."""
        if not api_key:
            return {"status": "disabled"}

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{base_url.rstrip('/')}/status",
                    headers={"x-api-key": api_key}
                )

                if response.status_code == 200:
                    return {
                        "status": "healthy",
                        "response_time_ms": response.elapsed.total_seconds() * 1000
                    }

                return {
                    "status": "unhealthy",
                    "error": f"API returned status {response.status_code}",
                    "response": response.text[:200]
                }
        except Exception as e:
            logger.error(f"Payment API health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    async def comprehensive_health_check(
        self,
        telegram_token: str,
        bitmart_url: str,
        payment_url: str,
        payment_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """Perform comprehensive health check of all dependencies."""
        start_time = _utcnow()

        checks = await asyncio.gather(
            self.check_telegram_api(telegram_token),
            self.check_bitmart_api(bitmart_url),
            self.check_payment_api(payment_url, payment_key),
            return_exceptions=True
        )

        services = {}
        for name, check in zip(["telegram", "bitmart", "payments"], checks):
            if isinstance(check, Exception):
                check = {"status": "unhealthy", "error": str(check)}
            services[name] = check

        all_healthy = all(
            check.get("status") in ["healthy", "disabled"]
            for check in services.values()
        )

        total_time = (_utcnow() - start_time).total_seconds() * 1000

        result = {
            "overall_status": "healthy" if all_healthy else "unhealthy",
            "timestamp": start_time.isoformat(),
            "total_check_time_ms": total_time,
            "services": services
        }

        self.last_checks["comprehensive"] = {
            "result": result,
            "timestamp": start_time
        }

        return result

    def get_cached_health(self, check_type: str = "comprehensive") -> Optional[Dict[str, Any]]:
        """Get cached health check result if recent enough."""
        cached = self.last_checks.get(check_type)
        if cached and _utcnow() - cached["timestamp"] < self.check_interval:
            return cached["result"]
        return None

    def basic_health_check(self) -> Dict[str, Any]:
        """Basic health check for application liveness."""
        return {
            "status": "healthy",
            "timestamp": _utcnow().isoformat(),
            "version": __version__
        }


# Global health checker instance
health_checker = HealthChecker()
