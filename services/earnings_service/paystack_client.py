"""
Paystack API client for checkout verification and webhook signatures.

Provides:
- ``PaystackClient.verify_transaction`` for the poll-and-verify flow
- ``verify_signature`` for ``x-paystack-signature`` webhook headers
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Optional

import httpx
from libs.common.config import Settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class VerifiedTransaction:
    """Result of ``GET /transaction/verify/{reference}``."""

    reference: str
    status: str  # success, failed, abandoned, ...
    amount: int  # in units
    currency: str
    data: dict = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @classmethod
    def from_payload(cls, tx: dict, reference: str) -> "VerifiedTransaction":
        """Build from a Paystack transaction object (API response or webhook data)."""
        return cls(
            reference=tx.get("reference", reference),
            status=tx.get("status", ""),
            amount=int(tx.get("amount") or 0),
            currency=tx.get("currency", ""),
            data=tx,
        )


class PaystackError(Exception):
    """Base exception for Paystack API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def verify_signature(secret_key: str, raw_body: bytes, signature: Optional[str]) -> bool:
    """HMAC-SHA512 of the raw body, hex encoded, compared in constant time."""
    if not signature:
        return False
    digest = hmac.new(secret_key.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(digest, signature)


class PaystackClient:
    """Async client for the Paystack Transaction API."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        if not settings.PAYSTACK_SECRET_KEY:
            raise ValueError("PAYSTACK_SECRET_KEY is required")
        self.secret_key = settings.PAYSTACK_SECRET_KEY
        self._http = http_client or httpx.AsyncClient(
            base_url=settings.PAYSTACK_API_BASE_URL.rstrip("/"),
            timeout=settings.PAYSTACK_TIMEOUT_SECONDS,
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/json",
            },
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def verify_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        return verify_signature(self.secret_key, raw_body, signature)

    async def _request(self, method: str, endpoint: str, params: dict = None) -> dict:
        """Make an async request to Paystack API."""
        try:
            response = await self._http.request(method, endpoint, params=params)
        except httpx.HTTPError as e:
            raise PaystackError(f"Paystack request failed: {e!r}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            logger.error(
                "Paystack API error: %s",
                response.status_code,
                extra={"extra_fields": {"endpoint": endpoint, "body": data}},
            )
            raise PaystackError(
                message=data.get("message", "Unknown Paystack error"),
                status_code=response.status_code,
                response_data=data,
            )

        if not data.get("status"):
            raise PaystackError(
                message=data.get("message", "Paystack request failed"),
                response_data=data,
            )

        return data

    async def verify_transaction(self, reference: str) -> VerifiedTransaction:
        """
        Look up a checkout by reference.

        Raises:
            PaystackError: if Paystack is unreachable or rejects the lookup
        """
        data = await self._request("GET", f"/transaction/verify/{reference}")
        tx = data.get("data") or {}
        return VerifiedTransaction.from_payload(tx, reference)
