"""
Email Client - Resend transport

Thin wrapper over the Resend SDK. The SDK call is blocking, so send() runs it
in a worker thread. Delivery problems come back as an EmailResult with
success=False; callers decide whether that matters.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import resend

from config import get_settings

logger = logging.getLogger(__name__)


class EmailStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
    status: EmailStatus = EmailStatus.PENDING


@dataclass
class EmailMessage:
    """A rendered email, addressed to one recipient"""
    to: str
    subject: str
    body: str
    html: bool = True
    user_id: Optional[str] = None
    message_type: Optional[str] = None


class EmailClient:
    """
    Usage:
        client = EmailClient()
        result = await client.send(EmailMessage(to="ann@example.com", subject="Hi", body="<p>Hi</p>"))
    """

    provider = "resend"

    def __init__(self, api_key: Optional[str] = None, from_address: Optional[str] = None):
        settings = get_settings()
        self.api_key = api_key or settings.EMAIL_API_KEY
        self.from_address = from_address or settings.EMAIL_FROM_ADDRESS

        if self.api_key:
            resend.api_key = self.api_key
        else:
            logger.warning("EMAIL_API_KEY not set - account emails will not be sent")

    def is_ready(self) -> bool:
        return bool(self.api_key and self.from_address)

    def build_params(self, message: EmailMessage, message_id: str) -> Dict[str, Any]:
        """Resend `Emails.send` parameters for a message."""
        return {
            "from": self.from_address,
            "to": [message.to],
            "subject": message.subject,
            ("html" if message.html else "text"): message.body,
            "headers": {
                "X-Message-ID": message_id,
                "X-Message-Type": message.message_type or "custom",
            },
        }

    async def send(self, message: EmailMessage) -> EmailResult:
        if not self.is_ready():
            return EmailResult(
                success=False,
                error="Email client not configured. Check EMAIL_API_KEY and EMAIL_FROM_ADDRESS.",
                status=EmailStatus.FAILED,
            )

        message_id = str(uuid.uuid4())
        params = self.build_params(message, message_id)

        try:
            response = await asyncio.to_thread(resend.Emails.send, params)
        except resend.exceptions.ResendError as e:
            logger.error(f"Resend rejected {message.message_type} email {message_id}: {e}")
            return EmailResult(success=False, message_id=message_id, error=str(e), status=EmailStatus.FAILED)

        provider_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        logger.info(f"{message.message_type or 'custom'} email {message_id} accepted by Resend as {provider_id}")

        return EmailResult(
            success=True,
            message_id=message_id,
            provider_message_id=provider_id,
            status=EmailStatus.SENT,
        )

    def get_status(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "ready": self.is_ready(),
            "from_address": self.from_address or "Not set",
        }
