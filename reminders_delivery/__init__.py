"""
reminders_delivery -- Template rendering and multi-provider message delivery.

Architecture:
    Sits above reminders_kernel and reminders_config.  Nothing in the
    kernel imports from here; reminders_batch drives it.
"""

from reminders_delivery.sender import ChannelSender
from reminders_delivery.templates import TemplateCatalog, render

__all__ = ["ChannelSender", "TemplateCatalog", "render"]
