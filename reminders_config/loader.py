"""
Configuration Loader (``reminders_config.loader``).

Responsibility
--------------
Loads YAML files, expands ``${ENV_VAR}`` placeholders, deep-merges a user
file over the bundled ``defaults.yaml`` and parses the result into the
frozen ``reminders_config.schema`` types.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* A placeholder whose variable is unset expands to ``""`` (or its
  ``${VAR:-default}``), leaving the provider unconfigured rather than
  failing the load.
* ``compute_checksum`` is deterministic for identical merged documents.

Failure modes
-------------
* Missing file, malformed YAML, missing keys or bad values raise
  ``ConfigLoadError`` naming the source.
"""

from __future__ import annotations

import copy
import hashlib
import json
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

from reminders_config.schema import (
    AlertsConfig,
    AlertThresholdDef,
    CycleConfig,
    DispatchConfig,
    EmailConfig,
    ProviderConfig,
    RecurrenceConfig,
    RemindersConfig,
    SmsConfig,
    TemplateDef,
)
from reminders_kernel.domain.types import Channel, Comparator, Severity
from reminders_kernel.exceptions import ConfigLoadError

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigLoadError: if the file is missing, unreadable or not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigLoadError(str(path), str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigLoadError(str(path), f"invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigLoadError(str(path), "top level must be a mapping")
    return data


def expand_env(value: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Recursively replace ``${VAR}`` / ``${VAR:-default}`` in strings."""
    env = os.environ if environ is None else environ
    if isinstance(value, str):
        return _ENV_PATTERN.sub(
            lambda m: env.get(m.group(1)) or (m.group(2) or ""), value
        )
    if isinstance(value, dict):
        return {k: expand_env(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env(v, env) for v in value]
    return value


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; lists are replaced whole."""
    merged = copy.deepcopy(base)
    for key, val in override.items():
        if isinstance(val, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], val)
        else:
            merged[key] = copy.deepcopy(val)
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of a configuration document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def parse_provider(data: dict[str, Any]) -> ProviderConfig:
    return ProviderConfig(
        name=data["name"],
        channel=Channel(data["channel"]),
        enabled=bool(data.get("enabled", True)),
        timeout_seconds=float(data.get("timeout_seconds", 15.0)),
        settings=dict(data.get("settings") or {}),
    )


def parse_cycle(data: dict[str, Any]) -> CycleConfig:
    channels = tuple(Channel(c) for c in data.get("channels", ["email"]))
    return CycleConfig(
        name=data["name"],
        schedule=data["schedule"],
        enabled=bool(data.get("enabled", True)),
        channels=channels,
        description=data.get("description", ""),
    )


def parse_template(template_id: str, data: dict[str, Any]) -> TemplateDef:
    return TemplateDef(
        template_id=template_id,
        subject=data.get("subject", ""),
        text=data["text"],
        html=data.get("html"),
        sms=data.get("sms"),
    )


def parse_threshold(data: dict[str, Any]) -> AlertThresholdDef:
    return AlertThresholdDef(
        metric=data["metric"],
        comparator=Comparator(data["comparator"]),
        threshold=float(data["threshold"]),
        severity=Severity(data.get("severity", "medium")),
        message=data.get("message"),
    )


def parse_config(data: dict[str, Any], checksum: str = "") -> RemindersConfig:
    """
    Parse a merged, env-expanded document into ``RemindersConfig``.

    Raises:
        KeyError / ValueError: on missing keys or invalid enum values.
    """
    recurrence = data.get("recurrence") or {}
    dispatch = data.get("dispatch") or {}
    email = data.get("email") or {}
    sms = data.get("sms") or {}
    alerts = data.get("alerts") or {}

    return RemindersConfig(
        timezone=data.get("timezone", "UTC"),
        database_url=data.get("database_url", "sqlite:///reminders.db"),
        log_level=str(data.get("log_level", "INFO")).upper(),
        recurrence=RecurrenceConfig(
            end_date_inclusive=bool(recurrence.get("end_date_inclusive", True)),
        ),
        dispatch=DispatchConfig(
            send_delay_seconds=float(dispatch.get("send_delay_seconds", 1.0)),
            overdue_window_days=int(dispatch.get("overdue_window_days", 7)),
            goal_alert_days=int(dispatch.get("goal_alert_days", 7)),
            goal_progress_threshold=float(
                dispatch.get("goal_progress_threshold", 0.8)
            ),
        ),
        email=EmailConfig(
            sender_name=email.get("sender_name", EmailConfig.sender_name),
            sender_address=email.get("sender_address", EmailConfig.sender_address),
        ),
        sms=SmsConfig(
            sender=sms.get("sender", SmsConfig.sender),
            country_code=str(sms.get("country_code", SmsConfig.country_code)),
        ),
        providers=tuple(parse_provider(p) for p in data.get("providers") or []),
        cycles=tuple(parse_cycle(c) for c in data.get("cycles") or []),
        templates=tuple(
            parse_template(tid, t) for tid, t in (data.get("templates") or {}).items()
        ),
        alerts=AlertsConfig(
            template_id=alerts.get("template_id", "alert"),
            thresholds=tuple(parse_threshold(t) for t in alerts.get("thresholds") or []),
        ),
        checksum=checksum,
    )


def load_config(
    path: Path | str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    include_defaults: bool = True,
) -> RemindersConfig:
    """
    Load the active configuration.

    ``path`` (optional) is deep-merged over the bundled defaults; with
    ``include_defaults=False`` it is used on its own.
    """
    data: dict[str, Any] = load_yaml_file(DEFAULTS_PATH) if include_defaults else {}
    source = str(DEFAULTS_PATH)
    if path is not None:
        source = str(path)
        data = deep_merge(data, load_yaml_file(Path(path)))

    expanded = expand_env(data, environ)
    try:
        return parse_config(expanded, checksum=compute_checksum(data))
    except (KeyError, ValueError, TypeError) as exc:
        raise ConfigLoadError(source, f"{type(exc).__name__}: {exc}") from exc
