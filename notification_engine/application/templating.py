"""Render ``{{variable}}`` placeholders in notification templates."""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Mapping

from notification_engine.domain.entities import NotificationDraft, NotificationTemplate

_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


def render(text: str, variables: Mapping[str, Any]) -> str:
    """Substitute known placeholders; unknown ones are left untouched."""

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        value = variables[name]
        return "" if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(_substitute, text or "")


def extract_variables(*texts: str) -> list[str]:
    """Return placeholder names in order of first appearance."""

    names: list[str] = []
    for text in texts:
        for name in _PLACEHOLDER_PATTERN.findall(text or ""):
            if name not in names:
                names.append(name)
    return names


def apply_template(
    template: NotificationTemplate,
    variables: Mapping[str, Any],
    draft: NotificationDraft,
) -> NotificationDraft:
    """Merge the rendered template onto ``draft``.

    The template decides title, message, type, category, priority and
    channels. Metadata is merged with the caller's keys taking precedence.
    """

    return replace(
        draft,
        title=render(template.title, variables),
        message=render(template.message, variables),
        type=template.type,
        category=template.category,
        priority=template.priority,
        channels=list(template.channels) or list(draft.channels),
        metadata={**(template.metadata or {}), **(draft.metadata or {})},
        template_id=template.id,
        template_variables=dict(variables),
    )


__all__ = ["apply_template", "extract_variables", "render"]
