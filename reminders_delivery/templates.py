"""
Message templates.

Two passes, in this order:

1. ``{{#if cond}} ... {{/if}}`` blocks (non-nested, may span lines) keep
   their content when ``data[cond]`` is truthy and vanish otherwise.
2. ``{{name}}`` tokens are replaced with the stringified payload value;
   ``None`` and missing keys render as the empty string.

Blocks are resolved on the template text alone, so payload values are
never read as markup.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from reminders_kernel.domain.types import Channel, MessageContent
from reminders_kernel.exceptions import TemplateNotFoundError
from reminders_config.schema import TemplateDef

_TOKEN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
_CONDITIONAL = re.compile(r"\{\{#if\s+(\w+)\}\}(.*?)\{\{/if\}\}", re.DOTALL)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def render(template: str, data: Mapping[str, Any]) -> str:
    """Render ``template`` against ``data``.  Pure."""
    resolved = _CONDITIONAL.sub(
        lambda m: m.group(2) if data.get(m.group(1)) else "", template
    )
    return _TOKEN.sub(lambda m: _stringify(data.get(m.group(1))), resolved)


class TemplateCatalog:
    """Named templates rendered per channel."""

    def __init__(self, templates: Iterable[TemplateDef]):
        self._templates = {t.template_id: t for t in templates}

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    @property
    def template_ids(self) -> list[str]:
        return sorted(self._templates)

    def get(self, template_id: str) -> TemplateDef:
        try:
            return self._templates[template_id]
        except KeyError:
            raise TemplateNotFoundError(template_id) from None

    def render_message(
        self,
        template_id: str,
        channel: Channel,
        payload: Mapping[str, Any],
    ) -> MessageContent:
        """
        Render subject and body for ``channel``.

        SMS uses the template's ``sms`` body when present, else ``text``,
        and carries no HTML part.
        """
        template = self.get(template_id)
        subject = render(template.subject, payload).strip()
        if channel is Channel.SMS:
            body = template.sms if template.sms is not None else template.text
            return MessageContent(subject=subject, text=render(body, payload).strip())
        html = render(template.html, payload) if template.html else None
        return MessageContent(
            subject=subject,
            text=render(template.text, payload).strip(),
            html=html,
        )
