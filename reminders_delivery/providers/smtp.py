"""Direct mail submission over SMTP (STARTTLS + login)."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Callable

from reminders_delivery.providers.base import OutboundMessage
from reminders_kernel.domain.types import Channel, ProviderReceipt
from reminders_kernel.exceptions import ConfigurationError, TransientDeliveryError

SmtpFactory = Callable[[str, int, float], smtplib.SMTP]


def _default_factory(host: str, port: int, timeout: float) -> smtplib.SMTP:
    return smtplib.SMTP(host, port, timeout=timeout)


class SmtpEmailProvider:
    name = "smtp"
    channel = Channel.EMAIL

    def __init__(
        self,
        host: str | None,
        port: int | str = 587,
        username: str | None = None,
        password: str | None = None,
        sender_name: str = "",
        sender_address: str = "",
        use_tls: bool = True,
        timeout_seconds: float = 15.0,
        smtp_factory: SmtpFactory | None = None,
    ):
        self._host = host or ""
        self._port = int(port or 587)
        self._username = username or ""
        self._password = password or ""
        self._sender_name = sender_name
        self._sender_address = sender_address
        self._use_tls = use_tls
        self._timeout = timeout_seconds
        self._factory = smtp_factory or _default_factory

    def is_configured(self) -> bool:
        return bool(self._host and self._username and self._password)

    def build_message(self, message: OutboundMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = formataddr((self._sender_name, self._sender_address))
        email["To"] = message.recipient
        email["Subject"] = message.content.subject
        email["Message-ID"] = make_msgid()
        email.set_content(message.content.text or "")
        if message.content.html:
            email.add_alternative(message.content.html, subtype="html")
        return email

    def attempt(self, message: OutboundMessage) -> ProviderReceipt:
        if not self.is_configured():
            raise ConfigurationError(self.name, "host or credentials missing")

        email = self.build_message(message)
        try:
            with self._factory(self._host, self._port, self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls()
                smtp.login(self._username, self._password)
                refused = smtp.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            raise TransientDeliveryError(self.name, f"{type(exc).__name__}: {exc}") from exc

        if refused:
            raise TransientDeliveryError(self.name, f"recipient refused: {refused}")
        return ProviderReceipt(provider=self.name, message_id=email["Message-ID"])
