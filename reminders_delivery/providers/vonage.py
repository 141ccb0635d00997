"""Vonage SMS API (form POST, per-message status "0" means accepted)."""

from __future__ import annotations

import re

import httpx

from reminders_delivery.providers.base import HttpProvider, OutboundMessage
from reminders_kernel.domain.types import Channel, ProviderReceipt
from reminders_kernel.exceptions import ConfigurationError, TransientDeliveryError

_PHONE_PUNCTUATION = re.compile(r"[\s()\-+]")


def format_phone_number(phone: str | None, country_code: str = "55") -> str:
    """
    Normalise a national or international number to digits with country code.

    Punctuation is stripped; a number already carrying the country code
    (and long enough to include an area code) is kept; a leading trunk
    ``0`` is dropped; numbers of at least 10 digits get the country code.
    """
    if not phone:
        return ""
    clean = _PHONE_PUNCTUATION.sub("", phone)
    if clean.startswith(country_code) and len(clean) >= 13:
        return clean
    if clean.startswith("0"):
        clean = clean[1:]
    if len(clean) >= 10 and not clean.startswith(country_code):
        clean = country_code + clean
    return clean


class VonageSmsProvider(HttpProvider):
    name = "vonage"
    channel = Channel.SMS

    def __init__(
        self,
        api_key: str | None,
        api_secret: str | None,
        sender: str,
        country_code: str = "55",
        base_url: str = "https://rest.nexmo.com",
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
    ):
        super().__init__(base_url, timeout_seconds, client)
        self._api_key = api_key or ""
        self._api_secret = api_secret or ""
        self._sender = sender
        self._country_code = country_code

    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_secret)

    def attempt(self, message: OutboundMessage) -> ProviderReceipt:
        if not self.is_configured():
            raise ConfigurationError(self.name, "api_key or api_secret missing")

        response = self._post(
            "/sms/json",
            data={
                "from": self._sender,
                "text": message.content.text,
                "to": format_phone_number(message.recipient, self._country_code),
                "api_key": self._api_key,
                "api_secret": self._api_secret,
            },
            headers={"Accept": "application/json"},
        )
        messages = self._json(response).get("messages") or []
        if not messages:
            raise TransientDeliveryError(self.name, "invalid response: no messages")

        first = messages[0]
        status = str(first.get("status"))
        if status != "0":
            error_text = first.get("error-text") or "unknown error"
            raise TransientDeliveryError(self.name, f"Vonage error {status}: {error_text}")
        return ProviderReceipt(provider=self.name, message_id=first.get("message-id"))
