"""
Tests for ChannelSender fallback across providers.

Providers are in-process fakes; attempts must come back in call order.
"""

import pytest

from reminders_delivery.providers.base import DeliveryProvider
from reminders_delivery.sender import NO_PROVIDERS, ChannelSender
from reminders_kernel.domain.types import (
    AttemptResult,
    Channel,
    MessageContent,
    ProviderReceipt,
)
from reminders_kernel.exceptions import ConfigurationError, TransientDeliveryError

CONTENT = MessageContent(subject="Hi", text="Hello")


class FakeProvider:
    def __init__(self, name, channel=Channel.EMAIL, *, configured=True, fail_with=None):
        self.name = name
        self.channel = channel
        self._configured = configured
        self._fail_with = fail_with
        self.calls = []

    def is_configured(self):
        return self._configured

    def attempt(self, message):
        self.calls.append(message)
        if self._fail_with is not None:
            raise self._fail_with
        return ProviderReceipt(provider=self.name, message_id=f"{self.name}-1")


@pytest.fixture
def sender_for(clock):
    def _build(*providers, channel=Channel.EMAIL):
        return ChannelSender({channel: list(providers)}, clock=clock)

    return _build


class TestFallback:
    def test_primary_fails_secondary_succeeds(self, sender_for):
        primary = FakeProvider("brevo", fail_with=TransientDeliveryError("brevo", "HTTP 503", 503))
        secondary = FakeProvider("smtp")

        result = sender_for(primary, secondary).send(Channel.EMAIL, "ana@example.com", CONTENT)

        assert result.success
        assert result.provider_used == "smtp"
        assert result.provider_message_id == "smtp-1"
        assert [(a.provider, a.result) for a in result.attempts] == [
            ("brevo", AttemptResult.FAILED),
            ("smtp", AttemptResult.SUCCEEDED),
        ]
        assert result.attempts[0].error == "brevo: HTTP 503"

    def test_unexpected_error_falls_through_to_secondary(self, sender_for):
        primary = FakeProvider("brevo", fail_with=RuntimeError("malformed response"))
        secondary = FakeProvider("smtp")

        result = sender_for(primary, secondary).send(Channel.EMAIL, "ana@example.com", CONTENT)

        assert result.success
        assert result.provider_used == "smtp"
        assert len(secondary.calls) == 1
        assert [(a.provider, a.result) for a in result.attempts] == [
            ("brevo", AttemptResult.FAILED),
            ("smtp", AttemptResult.SUCCEEDED),
        ]
        assert result.attempts[0].error == "brevo: RuntimeError: malformed response"

    def test_unexpected_error_on_last_provider_is_the_result_error(self, sender_for):
        result = sender_for(FakeProvider("brevo", fail_with=AttributeError("no field"))).send(
            Channel.EMAIL, "ana@example.com", CONTENT,
        )

        assert not result.success
        assert result.error == "brevo: AttributeError: no field"

    def test_first_success_stops(self, sender_for):
        primary = FakeProvider("brevo")
        secondary = FakeProvider("smtp")

        result = sender_for(primary, secondary).send(Channel.EMAIL, "ana@example.com", CONTENT)

        assert result.provider_used == "brevo"
        assert len(result.attempts) == 1
        assert secondary.calls == []

    def test_unconfigured_provider_skipped_without_call(self, sender_for):
        primary = FakeProvider("brevo", configured=False)
        secondary = FakeProvider("smtp")

        result = sender_for(primary, secondary).send(Channel.EMAIL, "ana@example.com", CONTENT)

        assert result.success
        assert primary.calls == []
        assert result.attempts[0].result is AttemptResult.SKIPPED

    def test_configuration_error_during_attempt_is_a_skip(self, sender_for):
        primary = FakeProvider("brevo", fail_with=ConfigurationError("brevo", "api_key missing"))
        secondary = FakeProvider("smtp")

        result = sender_for(primary, secondary).send(Channel.EMAIL, "ana@example.com", CONTENT)

        assert [a.result for a in result.attempts] == [AttemptResult.SKIPPED, AttemptResult.SUCCEEDED]

    def test_all_fail_returns_last_error(self, sender_for):
        result = sender_for(
            FakeProvider("vonage", Channel.SMS, fail_with=TransientDeliveryError("vonage", "timeout")),
            FakeProvider("twilio", Channel.SMS, fail_with=TransientDeliveryError("twilio", "HTTP 500", 500)),
            channel=Channel.SMS,
        ).send(Channel.SMS, "+5511987654321", CONTENT)

        assert not result.success
        assert result.provider_used is None
        assert result.error == "twilio: HTTP 500"
        assert [a.provider for a in result.attempts] == ["vonage", "twilio"]

    def test_no_providers(self, sender_for):
        result = sender_for(FakeProvider("brevo", configured=False)).send(
            Channel.EMAIL, "ana@example.com", CONTENT,
        )
        assert not result.success
        assert result.error == NO_PROVIDERS

    def test_channel_without_chain(self, clock):
        result = ChannelSender({}, clock=clock).send(Channel.SMS, "+5511987654321", CONTENT)
        assert result.error == NO_PROVIDERS
        assert result.attempts == ()


class TestDiagnostics:
    def test_check_configuration(self, clock):
        sender = ChannelSender(
            {
                Channel.EMAIL: [FakeProvider("brevo"), FakeProvider("smtp", configured=False)],
                Channel.SMS: [],
            },
            clock=clock,
        )

        assert sender.check_configuration() == {
            "email": [("brevo", True), ("smtp", False)],
            "sms": [],
        }

    def test_fake_satisfies_protocol(self):
        assert isinstance(FakeProvider("x"), DeliveryProvider)
