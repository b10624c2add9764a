"""
Sentry error tracking.

Events are scrubbed before they leave the process: credentials (bearer
tokens, the internal API key, billing/CRM secrets) and the user's postal
address never reach Sentry.
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Matched as substrings of the lower-cased key
SENSITIVE_KEYS = (
    "password", "token", "secret", "api_key", "api-key", "authorization",
    "cookie", "jwt", "mailing_address", "line1", "line2", "postal_code",
)


def init_sentry(
    dsn: str,
    environment: str = "development",
    release: Optional[str] = None,
    traces_sample_rate: float = 0.0,
) -> bool:
    """Returns True when Sentry is active."""
    if not dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        before_send=filter_sensitive_data,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            HttpxIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
    )
    logger.info(f"Sentry initialized ({environment}, release {release})")
    return True


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def redact_dict(value: Any) -> Any:
    """Recursively replace sensitive values in dicts (and dicts inside lists)."""
    if isinstance(value, dict):
        return {k: REDACTED if _is_sensitive(k) else redact_dict(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact_dict(item) for item in value]
    return value


def filter_sensitive_data(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """before_send hook"""
    request = event.get("request")
    if request:
        for part in ("headers", "data", "cookies"):
            if part in request:
                request[part] = redact_dict(request[part])

    if "extra" in event:
        event["extra"] = redact_dict(event["extra"])

    return event


def capture_exception(exception: BaseException, **extra) -> Optional[str]:
    """Report an exception with request details attached. Returns the event id."""
    with sentry_sdk.new_scope() as scope:
        for key, value in extra.items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(exception)


def set_user(user_id: str, email: Optional[str] = None):
    sentry_sdk.set_user({"id": user_id, "email": email})
