"""SendGrid email transport and the HTML envelope used for notifications."""

from __future__ import annotations

import html
import json
import logging
from typing import Any, Mapping

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from notification_engine.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_ACTION_TEXT = "View Details"


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_failure(status_code: Any, body: Any) -> str:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        return f"SendGrid responded with status {status_code}: {details}"
    if status_code:
        return f"SendGrid responded with status {status_code}"
    if details:
        return f"SendGrid request failed: {details}"
    return "SendGrid request failed"


def _extract_message_id(response: Any) -> str | None:
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    try:
        return headers.get("X-Message-Id") or headers.get("x-message-id")
    except AttributeError:
        return None


class SendGridEmailTransport:
    """Deliver HTML email through the SendGrid v3 API."""

    def __init__(self, api_key: str, sender: str) -> None:
        self._api_key = api_key
        self._sender = sender

    def send(self, to: str, subject: str, html_content: str) -> tuple[str | None, str | None]:
        message = Mail(
            from_email=self._sender,
            to_emails=to,
            subject=subject,
            html_content=html_content,
        )

        try:
            client = SendGridAPIClient(self._api_key)
            response = client.send(message)
        except Exception as exc:
            reason = _describe_failure(
                getattr(exc, "status_code", None), getattr(exc, "body", None)
            )
            logger.error("Error sending email via SendGrid: %s", reason)
            return None, reason

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            reason = _describe_failure(status_code, getattr(response, "body", None))
            logger.error("%s", reason)
            return None, reason

        return _extract_message_id(response), None


class DisabledEmailTransport:
    """Used when SendGrid credentials are not configured."""

    def send(self, to: str, subject: str, html_content: str) -> tuple[str | None, str | None]:
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return None, "email transport not configured"


def build_email_transport(settings: Settings) -> SendGridEmailTransport | DisabledEmailTransport:
    if settings.sendgrid_api_key and settings.sendgrid_sender:
        return SendGridEmailTransport(settings.sendgrid_api_key, settings.sendgrid_sender)
    return DisabledEmailTransport()


def render_notification_email(
    title: str,
    message: str,
    metadata: Mapping[str, Any] | None = None,
    *,
    app_name: str = "Study Teddy",
) -> str:
    """Wrap a notification in the HTML envelope sent to recipients.

    An action button is added when ``metadata`` carries an ``actionUrl``;
    its label comes from ``actionText``.
    """

    metadata = metadata or {}
    safe_title = html.escape(title)
    action = ""
    action_url = metadata.get("actionUrl")
    if action_url:
        action_text = metadata.get("actionText") or DEFAULT_ACTION_TEXT
        action = (
            "<p>"
            f'<a href="{html.escape(str(action_url), quote=True)}" class="button">'
            f"{html.escape(str(action_text))}</a>"
            "</p>"
        )
    return "".join(
        (
            "<!DOCTYPE html>",
            "<html><head><meta charset=\"utf-8\">",
            f"<title>{safe_title}</title>",
            "<style>",
            "body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }",
            ".container { max-width: 600px; margin: 0 auto; padding: 20px; }",
            ".header { background: #007bff; color: white; padding: 20px; text-align: center; }",
            ".content { padding: 20px; background: #f9f9f9; }",
            ".footer { padding: 20px; text-align: center; font-size: 12px; color: #666; }",
            ".button { display: inline-block; padding: 12px 24px; background: #007bff;"
            " color: white; text-decoration: none; border-radius: 4px; }",
            "</style></head><body><div class=\"container\">",
            f"<div class=\"header\"><h1>{safe_title}</h1></div>",
            f"<div class=\"content\"><p>{html.escape(message)}</p>{action}</div>",
            "<div class=\"footer\"><p>This is an automated message from "
            f"{html.escape(app_name)}. Please do not reply to this email.</p></div>",
            "</div></body></html>",
        )
    )


__all__ = [
    "DisabledEmailTransport",
    "SendGridEmailTransport",
    "build_email_transport",
    "render_notification_email",
]
