"""Integration modules for external APIs."""

from .bitmart_client import BitMartClient, BitMartAPIError
from .payment_client import PaymentClient, PaymentAPIError, verify_webhook_signature

__all__ = [
    "BitMartClient",
    "BitMartAPIError",
    "PaymentClient",
    "PaymentAPIError",
    "verify_webhook_signature",
]
