"""
Email Integration Module

Account notification emails sent through Resend.
"""

from .email_client import EmailClient, EmailResult, EmailMessage, EmailStatus
from .email_sender import EmailSender, EmailMessageType

__all__ = [
    'EmailClient',
    'EmailResult',
    'EmailMessage',
    'EmailStatus',
    'EmailSender',
    'EmailMessageType',
]
