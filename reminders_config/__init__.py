"""
reminders_config -- YAML configuration for the reminders packages.

``load_config()`` is the single entry point: bundled defaults, an
optional user file merged over them, ``${ENV}`` expansion for provider
credentials, parsed into frozen dataclasses.
"""

from reminders_config.loader import load_config
from reminders_config.schema import (
    CycleConfig,
    ProviderConfig,
    RemindersConfig,
    TemplateDef,
)

__all__ = [
    "CycleConfig",
    "ProviderConfig",
    "RemindersConfig",
    "TemplateDef",
    "load_config",
]
