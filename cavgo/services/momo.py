"""
Mobile-money (MoMo) gateway client.

Wraps the IntouchPay HTTP API used to pull payments from a passenger's
phone and to push deposits to it. Every request is signed with
sha256(username + account_no + partner_password + timestamp).
"""

import hashlib
import logging
import uuid
from datetime import datetime
from typing import Any

import httpx

from cavgo.core.config import Settings, settings
from cavgo.core.errors import PaymentGatewayError
from cavgo.core.observability import metrics
from cavgo.core.timeutils import utcnow

logger = logging.getLogger(__name__)


def format_timestamp(dt: datetime) -> str:
    """Gateway timestamp format: yyyymmddHHMMSS."""
    return dt.strftime("%Y%m%d%H%M%S")


class MomoClient:
    """
    Async client for the mobile-money gateway.

    Args:
        config: Settings holding the gateway credentials
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or settings
        self._client = httpx.AsyncClient(
            base_url=self.config.momo_base_url.rstrip("/"),
            timeout=httpx.Timeout(self.config.momo_timeout_seconds),
            transport=transport,
        )

    def build_password(self, timestamp: str) -> str:
        raw = (
            f"{self.config.momo_username}{self.config.momo_account_no}"
            f"{self.config.momo_partner_password}{timestamp}"
        )
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def _signed_body(self, phone_number: str, amount: int) -> dict[str, Any]:
        timestamp = format_timestamp(utcnow())
        return {
            "username": self.config.momo_username,
            "timestamp": timestamp,
            "amount": amount,
            "password": self.build_password(timestamp),
            "mobilephone": phone_number,
            "requesttransactionid": str(uuid.uuid4()),
        }

    async def _post(self, operation: str, path: str, body: dict[str, Any]) -> dict[str, Any]:
        transaction_id = body["requesttransactionid"]
        try:
            response = await self._client.post(path, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            metrics.payment_requests_total.labels(operation=operation, outcome="rejected").inc()
            logger.warning(
                "MoMo %s rejected: status=%s transaction=%s",
                operation,
                e.response.status_code,
                transaction_id,
            )
            raise PaymentGatewayError(
                f"Mobile money {operation} failed",
                details={
                    "status_code": e.response.status_code,
                    "response": e.response.text[:500],
                    "transaction_id": transaction_id,
                },
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            metrics.payment_requests_total.labels(operation=operation, outcome="error").inc()
            logger.error("MoMo %s error: %s (transaction=%s)", operation, e, transaction_id)
            raise PaymentGatewayError(
                f"Mobile money {operation} failed",
                details={"error": str(e), "transaction_id": transaction_id},
            ) from e

        metrics.payment_requests_total.labels(operation=operation, outcome="accepted").inc()
        logger.info("MoMo %s accepted: transaction=%s", operation, transaction_id)
        if not isinstance(data, dict):
            data = {"response": data}
        return {**data, "transaction_id": transaction_id}

    async def request_payment(self, phone_number: str, amount: int) -> dict[str, Any]:
        """
        Ask the gateway to pull `amount` from `phone_number`.

        Returns:
            Gateway JSON response plus the `transaction_id` we generated

        Raises:
            PaymentGatewayError: On transport errors or non-2xx responses
        """
        body = self._signed_body(phone_number, amount)
        body["callbackurl"] = self.config.momo_callback_url
        return await self._post("payment", "/requestpayment/", body)

    async def request_deposit(self, phone_number: str, amount: int) -> dict[str, Any]:
        """Ask the gateway to push `amount` to `phone_number`."""
        body = self._signed_body(phone_number, amount)
        body.update(withdrawcharge=0, reason="Deposit", sid=self.config.momo_sid)
        return await self._post("deposit", "/requestdeposit/", body)

    async def aclose(self) -> None:
        await self._client.aclose()
