"""Twilio Messages REST API (form POST with basic auth)."""

from __future__ import annotations

import httpx

from reminders_delivery.providers.base import HttpProvider, OutboundMessage
from reminders_kernel.domain.types import Channel, ProviderReceipt
from reminders_kernel.exceptions import ConfigurationError


class TwilioSmsProvider(HttpProvider):
    name = "twilio"
    channel = Channel.SMS

    def __init__(
        self,
        account_sid: str | None,
        auth_token: str | None,
        from_number: str | None,
        base_url: str = "https://api.twilio.com",
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
    ):
        super().__init__(base_url, timeout_seconds, client)
        self._account_sid = account_sid or ""
        self._auth_token = auth_token or ""
        self._from_number = from_number or ""

    def is_configured(self) -> bool:
        return bool(self._account_sid and self._auth_token and self._from_number)

    def attempt(self, message: OutboundMessage) -> ProviderReceipt:
        if not self.is_configured():
            raise ConfigurationError(self.name, "account_sid, auth_token or from_number missing")

        response = self._post(
            f"/2010-04-01/Accounts/{self._account_sid}/Messages.json",
            data={
                "To": message.recipient,
                "From": self._from_number,
                "Body": message.content.text,
            },
            auth=(self._account_sid, self._auth_token),
        )
        return ProviderReceipt(provider=self.name, message_id=self._json(response).get("sid"))
