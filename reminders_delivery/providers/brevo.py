"""Brevo transactional email API."""

from __future__ import annotations

import httpx

from reminders_delivery.providers.base import HttpProvider, OutboundMessage
from reminders_kernel.domain.types import Channel, ProviderReceipt
from reminders_kernel.exceptions import ConfigurationError


class BrevoEmailProvider(HttpProvider):
    name = "brevo"
    channel = Channel.EMAIL

    def __init__(
        self,
        api_key: str | None,
        sender_name: str,
        sender_address: str,
        base_url: str = "https://api.brevo.com/v3",
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
    ):
        super().__init__(base_url, timeout_seconds, client)
        self._api_key = api_key or ""
        self._sender = {"name": sender_name, "email": sender_address}

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def attempt(self, message: OutboundMessage) -> ProviderReceipt:
        if not self.is_configured():
            raise ConfigurationError(self.name, "api_key missing")

        body: dict = {
            "sender": self._sender,
            "to": [{"email": message.recipient}],
            "subject": message.content.subject,
        }
        if message.content.html:
            body["htmlContent"] = message.content.html
        if message.content.text:
            body["textContent"] = message.content.text

        response = self._post(
            "/smtp/email",
            json=body,
            headers={"api-key": self._api_key, "Accept": "application/json"},
        )
        message_id = (
            self._json(response).get("messageId")
            or response.headers.get("x-mailin-message-id")
        )
        return ProviderReceipt(provider=self.name, message_id=message_id)
