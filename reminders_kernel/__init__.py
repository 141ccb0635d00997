"""
Reminders Kernel

Recurring obligations for a personal-finance backend:
- Pure recurrence date arithmetic (month-end clamping, end-date bounds)
- Settle-and-regenerate with at-most-one successor per obligation
- Store contracts and SQLAlchemy implementations for obligations,
  users, portfolio items and the notification audit trail
- Structured JSON logging and the typed exception hierarchy shared by
  the delivery and batch packages
"""

__version__ = "0.1.0"
