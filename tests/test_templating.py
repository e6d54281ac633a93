"""Tests for template rendering."""

from __future__ import annotations

from notification_engine.application.templating import (
    apply_template,
    extract_variables,
    render,
)
from notification_engine.domain.entities import NotificationDraft, NotificationTemplate
from notification_engine.domain.enums import (
    NotificationCategory,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)


def _template(**overrides) -> NotificationTemplate:
    values = dict(
        id=7,
        name="task_due",
        title="Task Due: {{taskName}}",
        message="{{taskName}} is due {{ dueDate }}.",
        type=NotificationType.REMINDER,
        category=NotificationCategory.TASK,
        priority=NotificationPriority.HIGH,
        channels=[NotificationChannel.IN_APP, NotificationChannel.EMAIL],
        metadata={"actionText": "Open task", "icon": "/task.png"},
    )
    values.update(overrides)
    return NotificationTemplate(**values)


def test_render_substitutes_known_variables() -> None:
    assert render("Task Due: {{taskName}}", {"taskName": "Essay"}) == "Task Due: Essay"


def test_render_allows_whitespace_inside_braces() -> None:
    assert render("Hi {{ name }}!", {"name": "Ada"}) == "Hi Ada!"


def test_render_leaves_unknown_placeholders_verbatim() -> None:
    assert render("{{known}} and {{unknown}}", {"known": 1}) == "1 and {{unknown}}"


def test_render_none_as_empty_string() -> None:
    assert render("[{{value}}]", {"value": None}) == "[]"


def test_extract_variables_in_order_without_duplicates() -> None:
    assert extract_variables("{{b}} {{a}}", "{{ a }} {{c}}") == ["b", "a", "c"]


def test_apply_template_overrides_content_and_merges_metadata() -> None:
    draft = NotificationDraft(
        template_id=7,
        template_variables={"taskName": "Essay", "dueDate": "tomorrow"},
        metadata={"actionUrl": "/tasks/1", "icon": "/custom.png"},
    )

    rendered = apply_template(_template(), draft.template_variables, draft)

    assert rendered.title == "Task Due: Essay"
    assert rendered.message == "Essay is due tomorrow."
    assert rendered.type is NotificationType.REMINDER
    assert rendered.category is NotificationCategory.TASK
    assert rendered.priority is NotificationPriority.HIGH
    assert rendered.channels == [NotificationChannel.IN_APP, NotificationChannel.EMAIL]
    assert rendered.metadata == {
        "actionText": "Open task",
        "icon": "/custom.png",
        "actionUrl": "/tasks/1",
    }
    assert rendered.template_id == 7


def test_apply_template_without_channels_keeps_draft_channels() -> None:
    draft = NotificationDraft(template_id=7, channels=[NotificationChannel.PUSH])

    rendered = apply_template(_template(channels=[]), {}, draft)

    assert rendered.channels == [NotificationChannel.PUSH]
