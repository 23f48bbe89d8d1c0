"""BitMart REST client for spot, wallet and futures endpoints."""

import hashlib
import hmac
import json
import time
import httpx
from typing import Optional, Dict, Any, List
from urllib.parse import urlencode
from bitmart_bot.models.trading import SpotOrderParams, WithdrawParams, FuturesOrderParams, Balance
from bitmart_bot.utils.logger import get_logger

logger = get_logger(__name__)

SUCCESS_CODE = 1000


class BitMartAPIError(Exception):
    """Raised when BitMart rejects a request or cannot be reached."""

    def __init__(self, message: str, code: Optional[int] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class BitMartClient:
    """Client for the BitMart Cloud API with HMAC-SHA256 request signing."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        api_memo: Optional[str] = None,
        base_url: str = "https://api-cloud.bitmart.com",
        futures_base_url: str = "https://api-cloud-v2.bitmart.com",
        timeout: float = 30.0
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.api_memo = api_memo or ""
        self.base_url = base_url.rstrip('/')
        self.futures_base_url = futures_base_url.rstrip('/')
        self.client = httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def sign(self, timestamp: str, payload: str) -> str:
        """
        Compute the X-BM-SIGN header value.

        Args:
            timestamp: Millisecond timestamp sent in X-BM-TIMESTAMP
            payload: JSON body for POST requests, query string for GET requests

        Returns:
            Hex encoded HMAC-SHA256 signature
        """
        message = f"{timestamp}#{self.api_memo}#{payload}"
        return hmac.new(
            self.api_secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256
        ).hexdigest()

    def _signed_headers(self, payload: str) -> Dict[str, str]:
        timestamp = str(int(time.time() * 1000))
        return {
            "Content-Type": "application/json",
            "X-BM-KEY": self.api_key,
            "X-BM-TIMESTAMP": timestamp,
            "X-BM-SIGN": self.sign(timestamp, payload)
        }

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        signed: bool = True
    ) -> Dict[str, Any]:
        """
        Send a request and unwrap the BitMart response envelope.

        Args:
            method: HTTP method
            url: Absolute endpoint URL
            params: Query parameters for GET requests
            body: JSON body for POST requests
            signed: Whether to attach the signature headers

        Returns:
            The full response envelope ({code, message, trace, data})

        Raises:
            BitMartAPIError: On transport errors, HTTP errors or a non-success code
        """
        content = json.dumps(body, separators=(",", ":")) if body is not None else None
        query = urlencode(params) if params else ""
        headers = self._signed_headers(content if content is not None else query) if signed else {}

        if query:
            url = f"{url}?{query}"

        try:
            response = await self.client.request(method, url, content=content, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"BitMart request {method} {url} failed: {e}")
            raise BitMartAPIError(f"Request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            raise BitMartAPIError(
                f"Invalid response from BitMart: {response.status_code} - {response.text[:200]}",
                status_code=response.status_code
            )

        code = data.get("code") if isinstance(data, dict) else None
        if response.status_code >= 400 or code != SUCCESS_CODE:
            message = data.get("message") if isinstance(data, dict) else None
            error_msg = f"BitMart API error {code}: {message or response.text[:200]}"
            logger.error(f"{method} {url} -> {response.status_code}: {error_msg}")
            raise BitMartAPIError(error_msg, code=code, status_code=response.status_code)

        logger.debug(f"{method} {url} -> {data.get('trace')}")
        return data

    async def get_account_balances(self) -> Dict[str, Any]:
        """Get spot wallet balances (GET /account/v1/wallet)."""
        return await self._request("GET", f"{self.base_url}/account/v1/wallet")

    async def submit_spot_order(self, params: SpotOrderParams) -> Dict[str, Any]:
        """
        Place a spot order (POST /spot/v2/submit_order).

        Args:
            params: Validated spot order parameters

        Returns:
            Raw BitMart response envelope
        """
        logger.info(f"Submitting spot {params.side.value} order {params.size} {params.symbol} @ {params.price}")
        return await self._request("POST", f"{self.base_url}/spot/v2/submit_order", body=params.to_payload())

    async def submit_withdrawal(self, params: WithdrawParams) -> Dict[str, Any]:
        """
        Apply for a withdrawal (POST /account/v1/withdraw/apply).

        The API key needs withdraw permission and the address usually has to be
        whitelisted on the account.
        """
        logger.info(f"Submitting withdrawal of {params.amount} {params.currency}")
        return await self._request("POST", f"{self.base_url}/account/v1/withdraw/apply", body=params.to_payload())

    async def submit_futures_order(self, params: FuturesOrderParams) -> Dict[str, Any]:
        """Place a futures order (POST /contract/private/submit-order)."""
        logger.info(f"Submitting futures order side={int(params.side)} {params.size} {params.symbol} @ {params.price}")
        return await self._request(
            "POST",
            f"{self.futures_base_url}/contract/private/submit-order",
            body=params.to_payload()
        )

    async def get_system_time(self) -> Dict[str, Any]:
        """Get server time (public, unsigned)."""
        return await self._request("GET", f"{self.base_url}/system/time", signed=False)

    @staticmethod
    def extract_balances(response: Dict[str, Any]) -> List[Balance]:
        """
        Pull balance lines out of a wallet response.

        The wallet endpoint nests the list under data.wallet; a bare list under
        data is accepted too.
        """
        data = response.get("data", response) if isinstance(response, dict) else response
        if isinstance(data, dict):
            data = data.get("wallet", [])
        return [Balance(**item) for item in (data or []) if isinstance(item, dict) and item.get("currency")]

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on BitMart API."""
        try:
            start = time.monotonic()
            await self.get_system_time()
            return {
                "status": "healthy",
                "response_time_ms": (time.monotonic() - start) * 1000
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e)
            }
