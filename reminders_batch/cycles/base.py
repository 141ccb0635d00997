"""
NotificationCycle protocol, supporting types, and CycleRegistry.

Contract:
    ``NotificationCycle`` is one scheduled scan: it reads the stores for
    the day's due condition and returns immutable ScanItems.  The
    dispatcher owns everything after the scan (recipient resolution,
    deduplication, rendering, sending).
    ``CycleRegistry`` stores cycles keyed by ``cycle_name``.

Architecture:
    reminders_batch/cycles.  Cycles read only through the store contracts
    in reminders_kernel.stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from reminders_config.schema import DispatchConfig
from reminders_kernel.exceptions import UnknownCycleError
from reminders_kernel.stores.contracts import (
    ObligationStore,
    PortfolioStore,
    UserDirectory,
)

# =============================================================================
# Supporting DTOs
# =============================================================================


@dataclass(frozen=True)
class ScanItem:
    """One thing to notify a user about.  Created by ``scan()``."""

    user_id: UUID
    template_id: str
    subject_id: UUID | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CycleContext:
    """Read-side dependencies handed to every scan."""

    obligations: ObligationStore
    users: UserDirectory
    portfolio: PortfolioStore
    settings: DispatchConfig = field(default_factory=DispatchConfig)


def money(value: Decimal) -> str:
    """Two-decimal amount for message payloads."""
    return f"{value:.2f}"


# =============================================================================
# NotificationCycle Protocol
# =============================================================================


@runtime_checkable
class NotificationCycle(Protocol):
    """
    Contract:
        - ``cycle_name``: unique key registered in CycleRegistry and used
          in configuration and markers.
        - ``uses_markers``: when True the dispatcher skips subjects already
          notified by this cycle today and marks them after a success.
        - ``scan()``: PersistenceError from a store propagates and aborts
          the cycle.
    """

    @property
    def cycle_name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def uses_markers(self) -> bool: ...

    def scan(self, context: CycleContext, today: date) -> tuple[ScanItem, ...]: ...


# =============================================================================
# CycleRegistry
# =============================================================================


class CycleRegistry:
    def __init__(self) -> None:
        self._cycles: dict[str, NotificationCycle] = {}

    def register(self, cycle: NotificationCycle) -> None:
        """Raises ValueError if the cycle name is already registered."""
        if cycle.cycle_name in self._cycles:
            raise ValueError(f"Cycle '{cycle.cycle_name}' is already registered")
        self._cycles[cycle.cycle_name] = cycle

    def get(self, cycle_name: str) -> NotificationCycle:
        """Raises UnknownCycleError if not registered."""
        try:
            return self._cycles[cycle_name]
        except KeyError:
            raise UnknownCycleError(cycle_name, list(self._cycles)) from None

    def list_cycles(self) -> tuple[str, ...]:
        return tuple(sorted(self._cycles))

    def __len__(self) -> int:
        return len(self._cycles)

    def __contains__(self, cycle_name: str) -> bool:
        return cycle_name in self._cycles
