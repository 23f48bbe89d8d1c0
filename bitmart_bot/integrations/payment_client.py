"""Payment processor client for issuing deposit addresses."""

import hashlib
import hmac
import httpx
from typing import Dict, Any, Optional
from bitmart_bot.models.deposit import DepositAddressRequest, DepositAddress
from bitmart_bot.utils.logger import get_logger

logger = get_logger(__name__)


def verify_webhook_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """
    Check the hex HMAC-SHA256 of a raw webhook body.

    Args:
        secret: Shared webhook secret
        body: Raw request body as received
        signature: Value of the signature header, optionally prefixed with "sha256="

    Returns:
        True if the signature matches
    """
    if not signature:
        return False

    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode("ascii"), signature.lower().encode("utf-8"))


class PaymentAPIError(Exception):
    """Raised when the payment processor rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PaymentClient:
    """Client for the payment processor's deposit-address API."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "Content-Type": "application/json"
        }

    async def create_deposit_address(self, request: DepositAddressRequest) -> DepositAddress:
        """
        Request a deposit address for a user.

        Args:
            request: Currency, optional network and the requesting user

        Returns:
            DepositAddress issued by the processor

        Raises:
            PaymentAPIError: If the processor fails or returns no address
        """
        payload = {
            "currency": request.currency,
            "order_id": request.order_id
        }
        if request.network:
            payload["network"] = request.network

        logger.info(f"Requesting {request.currency} deposit address for user {request.user_id}")

        try:
            response = await self.client.post(
                f"{self.base_url}/deposit-address",
                json=payload,
                headers=self._headers()
            )
        except httpx.HTTPError as e:
            logger.error(f"Payment API request failed: {e}")
            raise PaymentAPIError(f"Request failed: {e}") from e

        if response.status_code not in (200, 201):
            error_msg = f"Payment API error: {response.status_code} - {response.text[:200]}"
            logger.error(error_msg)
            raise PaymentAPIError(error_msg, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise PaymentAPIError("Payment API returned invalid JSON", status_code=response.status_code)

        # Some processors wrap the result in a "data" object
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]

        address = data.get("address") if isinstance(data, dict) else None
        if not address:
            raise PaymentAPIError("No address in payment API response", status_code=response.status_code)

        return DepositAddress(
            address=address,
            currency=data.get("currency") or request.currency,
            network=data.get("network") or request.network
        )

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on the payment API."""
        try:
            response = await self.client.get(
                f"{self.base_url}/status",
                headers=self._headers()
            )

            if response.status_code == 200:
                return {
                    "status": "healthy",
                    "response_time_ms": response.elapsed.total_seconds() * 1000
                }
            else:
                return {
                    "status": "unhealthy",
                    "error": f"API returned status {response.status_code}"
                }

        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e)
            }
