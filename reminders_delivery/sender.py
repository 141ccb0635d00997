"""
ChannelSender -- ordered multi-provider delivery with fallback.

Contract:
    ``send(channel, recipient, content)`` tries the channel's providers in
    priority order and stops at the first success.

Invariants enforced:
    - Every provider consulted leaves exactly one DeliveryAttempt, in call
      order, including unconfigured providers (recorded as skipped with
      no network call).
    - A provider failure never aborts the chain, whatever it raises; only
      the final outcome decides ``success``.
"""

from __future__ import annotations

import time
from typing import Mapping, Sequence

from reminders_delivery.providers.base import DeliveryProvider, OutboundMessage
from reminders_kernel.domain.clock import Clock, SystemClock
from reminders_kernel.domain.types import (
    AttemptResult,
    Channel,
    DeliveryAttempt,
    DeliveryResult,
    MessageContent,
)
from reminders_kernel.exceptions import ConfigurationError, TransientDeliveryError
from reminders_kernel.logging_config import get_logger

logger = get_logger("delivery.sender")

NO_PROVIDERS = "no providers configured"


class ChannelSender:
    def __init__(
        self,
        providers: Mapping[Channel, Sequence[DeliveryProvider]],
        clock: Clock | None = None,
    ):
        self._providers = {channel: list(chain) for channel, chain in providers.items()}
        self._clock = clock or SystemClock()

    def providers_for(self, channel: Channel) -> list[DeliveryProvider]:
        return list(self._providers.get(channel, ()))

    def send(
        self,
        channel: Channel,
        recipient: str,
        content: MessageContent,
    ) -> DeliveryResult:
        message = OutboundMessage(channel=channel, recipient=recipient, content=content)
        attempts: list[DeliveryAttempt] = []
        last_error: str | None = None

        for provider in self.providers_for(channel):
            attempted_at = self._clock.now()

            if not provider.is_configured():
                attempts.append(
                    DeliveryAttempt(
                        provider=provider.name,
                        attempted_at=attempted_at,
                        result=AttemptResult.SKIPPED,
                        error="not configured",
                    )
                )
                logger.debug("provider_skipped", extra={"provider": provider.name})
                continue

            start = time.monotonic()
            try:
                receipt = provider.attempt(message)
            except ConfigurationError as exc:
                attempts.append(
                    DeliveryAttempt(
                        provider=provider.name,
                        attempted_at=attempted_at,
                        result=AttemptResult.SKIPPED,
                        error=str(exc),
                        duration_ms=int((time.monotonic() - start) * 1000),
                    )
                )
                continue
            except TransientDeliveryError as exc:
                last_error = str(exc)
                attempts.append(
                    DeliveryAttempt(
                        provider=provider.name,
                        attempted_at=attempted_at,
                        result=AttemptResult.FAILED,
                        error=last_error,
                        duration_ms=int((time.monotonic() - start) * 1000),
                    )
                )
                logger.warning(
                    "provider_attempt_failed",
                    extra={
                        "provider": provider.name,
                        "channel": channel.value,
                        "error": last_error,
                        "status_code": exc.status_code,
                    },
                )
                continue
            except Exception as exc:
                last_error = f"{provider.name}: {type(exc).__name__}: {exc}"
                attempts.append(
                    DeliveryAttempt(
                        provider=provider.name,
                        attempted_at=attempted_at,
                        result=AttemptResult.FAILED,
                        error=last_error,
                        duration_ms=int((time.monotonic() - start) * 1000),
                    )
                )
                logger.exception(
                    "provider_attempt_crashed",
                    extra={"provider": provider.name, "channel": channel.value},
                )
                continue

            duration_ms = int((time.monotonic() - start) * 1000)
            attempts.append(
                DeliveryAttempt(
                    provider=provider.name,
                    attempted_at=attempted_at,
                    result=AttemptResult.SUCCEEDED,
                    duration_ms=duration_ms,
                    message_id=receipt.message_id,
                )
            )
            logger.info(
                "message_delivered",
                extra={
                    "provider": provider.name,
                    "channel": channel.value,
                    "message_id": receipt.message_id,
                    "duration_ms": duration_ms,
                    "attempt_count": len(attempts),
                },
            )
            return DeliveryResult(
                success=True,
                provider_used=provider.name,
                provider_message_id=receipt.message_id,
                attempts=tuple(attempts),
            )

        error = last_error or NO_PROVIDERS
        logger.error(
            "message_undeliverable",
            extra={
                "channel": channel.value,
                "error": error,
                "attempt_count": len(attempts),
            },
        )
        return DeliveryResult(success=False, error=error, attempts=tuple(attempts))

    def check_configuration(self) -> dict[str, list[tuple[str, bool]]]:
        """Provider readiness per channel, in fallback order.  No network calls."""
        return {
            channel.value: [(p.name, p.is_configured()) for p in chain]
            for channel, chain in self._providers.items()
        }
