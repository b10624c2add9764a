"""
Account notification emails.

Each EmailMessageType has a subject/body template pair. Templates use
str.format placeholders; a template whose placeholders are not all supplied
is not sent. Values are HTML-escaped before they reach the body; subjects
are plain text and get them as-is.
"""

import html
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from config import get_settings
from .email_client import EmailClient, EmailMessage, EmailResult, EmailStatus

logger = logging.getLogger(__name__)


class EmailMessageType(str, Enum):
    WELCOME = "welcome"
    FORGOT_PASSWORD = "forgot_password"
    CHANGE_PASSWORD = "change_password"
    RESEND_CONFIRMATION = "resend_confirmation"


_WRAPPER = '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{content}</div>'

# kind -> (subject, body)
DEFAULT_TEMPLATES: Dict[EmailMessageType, Tuple[str, str]] = {
    EmailMessageType.WELCOME: (
        "Welcome, {first_name}! Please confirm your email",
        "<h2>Welcome!</h2>"
        "<p>Hi {first_name},</p>"
        "<p>Your account has been created. Please confirm your email address:</p>"
        '<p><a href="{confirm_url}">Confirm Email</a></p>',
    ),
    EmailMessageType.RESEND_CONFIRMATION: (
        "Confirm your email address",
        "<p>Hi {first_name},</p>"
        "<p>Here is a new link to confirm your email address:</p>"
        '<p><a href="{confirm_url}">{confirm_url}</a></p>',
    ),
    EmailMessageType.FORGOT_PASSWORD: (
        "Reset your password",
        "<p>Hi {first_name},</p>"
        "<p>We received a request to reset your password. Use the link below to choose a new one:</p>"
        '<p><a href="{reset_url}">{reset_url}</a></p>'
        "<p>If you did not request this, you can ignore this email.</p>",
    ),
    EmailMessageType.CHANGE_PASSWORD: (
        "Your password was changed",
        "<p>Hi {first_name},</p>"
        "<p>The password on your account was just changed.</p>"
        "<p>If this wasn't you, please reset your password immediately.</p>",
    ),
}


class EmailSender:
    """
    Usage:
        sender = EmailSender()
        await sender.send_notification(
            EmailMessageType.WELCOME, "ann@example.com", {"first_name": "Ann", "token": "..."}
        )
    """

    def __init__(self, client: Optional[EmailClient] = None):
        self.client = client or EmailClient()
        self._templates: Dict[str, Tuple[str, str]] = {
            kind.value: template for kind, template in DEFAULT_TEMPLATES.items()
        }

    def register_template(self, template_id: str, subject: str, body: str) -> None:
        """Add or replace a template."""
        self._templates[template_id] = (subject, body)

    def list_templates(self) -> List[str]:
        return list(self._templates)

    def render_template(self, template_id: str, variables: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        """(subject, html body), or None if the template is unknown or a variable is missing"""
        template = self._templates.get(template_id)
        if template is None:
            return None

        subject, body = template
        try:
            escaped = {key: html.escape(str(value)) for key, value in variables.items()}
            return subject.format(**variables), _WRAPPER.format(content=body.format(**escaped))
        except KeyError as e:
            logger.error(f"Template '{template_id}' is missing variable {e}")
            return None

    async def send_notification(
        self,
        kind: EmailMessageType,
        recipient: str,
        payload: Dict[str, Any],
    ) -> EmailResult:
        """Render `kind` with `payload` and send it. Failures are returned, not raised."""
        kind = EmailMessageType(kind)

        rendered = self.render_template(kind.value, self._template_variables(kind, payload))
        if rendered is None:
            return EmailResult(
                success=False,
                error=f"Failed to render template '{kind.value}'",
                status=EmailStatus.FAILED,
            )

        subject, body = rendered
        return await self.client.send(EmailMessage(
            to=recipient,
            subject=subject,
            body=body,
            user_id=payload.get("user_id"),
            message_type=kind.value,
        ))

    def _template_variables(self, kind: EmailMessageType, payload: Dict[str, Any]) -> Dict[str, Any]:
        settings = get_settings()
        variables = {**payload, "first_name": payload.get("first_name") or "there"}

        token = quote(str(payload.get("token") or ""), safe="")
        if kind in (EmailMessageType.WELCOME, EmailMessageType.RESEND_CONFIRMATION):
            variables["confirm_url"] = f"{settings.CONFIRM_EMAIL_URL}/{token}"
        elif kind == EmailMessageType.FORGOT_PASSWORD:
            variables["reset_url"] = f"{settings.FORGOT_PASSWORD_URL}/{token}"

        return variables
