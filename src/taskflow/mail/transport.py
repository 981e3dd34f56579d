"""Mail delivery transports."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import uuid4

import httpx

from taskflow.errors import MailDeliveryError
from taskflow.integrations.circuit_breaker import CircuitBreaker, CircuitBreakerOpen

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    """Hands a rendered message to a delivery service."""

    @abstractmethod
    async def deliver(self, sender: str, to: str, subject: str, text: str, html: str) -> str:
        """Deliver and return the provider's message id.

        Raises ``MailDeliveryError`` on failure so the mail job is retried.
        """

    async def close(self) -> None:
        """Release connections."""


class LoggingMailTransport(MailTransport):
    """Development transport: logs messages instead of sending them."""

    def __init__(self):
        self.sent: list[dict[str, str]] = []

    async def deliver(self, sender: str, to: str, subject: str, text: str, html: str) -> str:
        message_id = f"<{uuid4()}@taskflow.local>"
        self.sent.append({"from": sender, "to": to, "subject": subject, "text": text, "html": html})
        logger.info(f"Mail to {to} not sent (logging transport): {subject}")
        return message_id


class HttpMailTransport(MailTransport):
    """
    Delivers through an HTTP mail API (POST JSON, bearer token).

    Calls go through a circuit breaker when one is given, so a failing
    provider makes mail jobs fail fast and back off instead of each one
    waiting out the request timeout.
    """

    def __init__(
        self,
        endpoint: str,
        auth_token: Optional[str] = None,
        timeout_ms: int = 5000,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.auth_token = auth_token
        self.circuit_breaker = circuit_breaker
        self._client = client or httpx.AsyncClient(timeout=timeout_ms / 1000)

    async def deliver(self, sender: str, to: str, subject: str, text: str, html: str) -> str:
        payload = {"from": sender, "to": to, "subject": subject, "text": text, "html": html}
        try:
            if self.circuit_breaker:
                data = await self.circuit_breaker.call(self._post, payload)
            else:
                data = await self._post(payload)
        except CircuitBreakerOpen as e:
            raise MailDeliveryError(to, str(e)) from e
        except httpx.HTTPError as e:
            raise MailDeliveryError(to, f"{type(e).__name__}: {e}") from e

        return str(data.get("id") or data.get("messageId") or "")

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"

        response = await self._client.post(self.endpoint, json=payload, headers=headers)
        response.raise_for_status()
        return response.json() if response.content else {}

    async def close(self) -> None:
        await self._client.aclose()
