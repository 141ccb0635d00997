from reminders_kernel.services.recurrence_engine import RecurrenceEngine

__all__ = ["RecurrenceEngine"]
