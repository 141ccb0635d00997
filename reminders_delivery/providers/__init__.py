"""
reminders_delivery.providers -- Delivery provider strategies.

``build_providers`` turns the configured provider list into ordered
per-channel provider chains.
"""

from __future__ import annotations

from typing import Callable

import httpx

from reminders_config.schema import ProviderConfig, RemindersConfig
from reminders_delivery.providers.base import (
    DeliveryProvider,
    HttpProvider,
    OutboundMessage,
)
from reminders_delivery.providers.brevo import BrevoEmailProvider
from reminders_delivery.providers.smtp import SmtpEmailProvider, SmtpFactory
from reminders_delivery.providers.twilio import TwilioSmsProvider
from reminders_delivery.providers.vonage import VonageSmsProvider, format_phone_number
from reminders_kernel.domain.types import Channel
from reminders_kernel.exceptions import ConfigurationError

__all__ = [
    "BrevoEmailProvider",
    "DeliveryProvider",
    "HttpProvider",
    "OutboundMessage",
    "SmtpEmailProvider",
    "TwilioSmsProvider",
    "VonageSmsProvider",
    "build_providers",
    "format_phone_number",
]


def _brevo(cfg: ProviderConfig, root: RemindersConfig, client, smtp_factory):
    s = cfg.settings
    return BrevoEmailProvider(
        api_key=s.get("api_key"),
        sender_name=root.email.sender_name,
        sender_address=root.email.sender_address,
        base_url=s.get("base_url", "https://api.brevo.com/v3"),
        timeout_seconds=cfg.timeout_seconds,
        client=client,
    )


def _smtp(cfg: ProviderConfig, root: RemindersConfig, client, smtp_factory):
    s = cfg.settings
    return SmtpEmailProvider(
        host=s.get("host"),
        port=s.get("port") or 587,
        username=s.get("username"),
        password=s.get("password"),
        sender_name=root.email.sender_name,
        sender_address=root.email.sender_address,
        use_tls=bool(s.get("use_tls", True)),
        timeout_seconds=cfg.timeout_seconds,
        smtp_factory=smtp_factory,
    )


def _vonage(cfg: ProviderConfig, root: RemindersConfig, client, smtp_factory):
    s = cfg.settings
    return VonageSmsProvider(
        api_key=s.get("api_key"),
        api_secret=s.get("api_secret"),
        sender=root.sms.sender,
        country_code=root.sms.country_code,
        base_url=s.get("base_url", "https://rest.nexmo.com"),
        timeout_seconds=cfg.timeout_seconds,
        client=client,
    )


def _twilio(cfg: ProviderConfig, root: RemindersConfig, client, smtp_factory):
    s = cfg.settings
    return TwilioSmsProvider(
        account_sid=s.get("account_sid"),
        auth_token=s.get("auth_token"),
        from_number=s.get("from_number"),
        base_url=s.get("base_url", "https://api.twilio.com"),
        timeout_seconds=cfg.timeout_seconds,
        client=client,
    )


_FACTORIES: dict[str, Callable[..., DeliveryProvider]] = {
    "brevo": _brevo,
    "smtp": _smtp,
    "vonage": _vonage,
    "twilio": _twilio,
}


def build_providers(
    config: RemindersConfig,
    *,
    client: httpx.Client | None = None,
    smtp_factory: SmtpFactory | None = None,
) -> dict[Channel, list[DeliveryProvider]]:
    """
    Ordered provider chains per channel from configuration.

    Raises:
        ConfigurationError: for a provider name with no implementation.
    """
    chains: dict[Channel, list[DeliveryProvider]] = {c: [] for c in Channel}
    for cfg in config.providers:
        if not cfg.enabled:
            continue
        factory = _FACTORIES.get(cfg.name)
        if factory is None:
            raise ConfigurationError(
                cfg.name, f"unknown provider. Available: {sorted(_FACTORIES)}"
            )
        provider = factory(cfg, config, client, smtp_factory)
        if provider.channel is not cfg.channel:
            raise ConfigurationError(
                cfg.name, f"serves {provider.channel.value}, configured for {cfg.channel.value}"
            )
        chains[cfg.channel].append(provider)
    return chains
