"""
reminders_kernel.models -- ORM models.

Architecture: reminders_kernel/models. Imports from reminders_kernel.db.base only.
"""

from reminders_kernel.models.directory import UserModel
from reminders_kernel.models.notification import (
    DeliveryAttemptModel,
    NotificationJobModel,
    NotificationMarkerModel,
)
from reminders_kernel.models.obligation import CategoryModel, ObligationModel
from reminders_kernel.models.portfolio import (
    AchievementModel,
    GoalModel,
    InvestmentModel,
)

__all__ = [
    "AchievementModel",
    "CategoryModel",
    "DeliveryAttemptModel",
    "GoalModel",
    "InvestmentModel",
    "NotificationJobModel",
    "NotificationMarkerModel",
    "ObligationModel",
    "UserModel",
]
