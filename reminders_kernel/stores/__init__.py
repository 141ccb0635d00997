"""
reminders_kernel.stores -- Store contracts and SQLAlchemy implementations.
"""

from reminders_kernel.stores.audit import SqlNotificationAudit
from reminders_kernel.stores.contracts import (
    NotificationAudit,
    ObligationStore,
    PortfolioStore,
    UserDirectory,
)
from reminders_kernel.stores.directory import SqlUserDirectory
from reminders_kernel.stores.obligations import SqlObligationStore
from reminders_kernel.stores.portfolio import SqlPortfolioStore

__all__ = [
    "NotificationAudit",
    "ObligationStore",
    "PortfolioStore",
    "SqlNotificationAudit",
    "SqlObligationStore",
    "SqlPortfolioStore",
    "SqlUserDirectory",
    "UserDirectory",
]
