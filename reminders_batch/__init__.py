"""
reminders_batch -- Scheduled notification cycles, alerts and the app root.

Top of the dependency graph: imports reminders_kernel, reminders_config
and reminders_delivery; nothing imports from here.
"""
