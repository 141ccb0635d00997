"""
Provider strategy interface.

Contract:
    ``attempt`` either returns a ProviderReceipt or raises:
      - ConfigurationError when credentials are missing (no network call),
      - TransientDeliveryError on timeout, non-2xx or provider rejection.
    ``is_configured`` is side-effect free and lets the sender record a
    skip without calling ``attempt``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import httpx

from reminders_kernel.domain.types import Channel, MessageContent, ProviderReceipt
from reminders_kernel.exceptions import TransientDeliveryError


@dataclass(frozen=True)
class OutboundMessage:
    """What a provider needs to deliver one message."""

    channel: Channel
    recipient: str
    content: MessageContent


@runtime_checkable
class DeliveryProvider(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def channel(self) -> Channel: ...

    def is_configured(self) -> bool: ...

    def attempt(self, message: OutboundMessage) -> ProviderReceipt: ...


class HttpProvider:
    """Shared plumbing for providers that speak HTTP through httpx."""

    name = "http"
    channel = Channel.EMAIL

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        """POST and translate transport failures and non-2xx into TransientDeliveryError."""
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = self._client.post(url, timeout=self._timeout, **kwargs)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientDeliveryError(self.name, f"timeout: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransientDeliveryError(self.name, f"transport error: {exc}") from exc

        if not response.is_success:
            raise TransientDeliveryError(
                self.name,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
