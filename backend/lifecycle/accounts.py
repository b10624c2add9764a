"""
Account lifecycle hooks.

The account-creation authority creates the base identity and the billing and
CRM accounts, then calls on_account_created with the resulting external IDs.
The local profile is written first; the welcome email is best-effort and can
never undo an account that was already created.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from email_integration import EmailMessageType, EmailSender
from models import ProfileEntity, UpstreamUser
from services.errors import NotificationFailure
from services.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountCreationContext:
    """External IDs supplied by the account-creation authority"""
    billing_account_id: Optional[str] = None
    crm_account_id: Optional[str] = None


def build_profile(upstream_user: UpstreamUser, context: AccountCreationContext) -> ProfileEntity:
    return ProfileEntity(
        id=upstream_user.id,
        email=upstream_user.email,
        first_name=upstream_user.first_name,
        last_name=upstream_user.last_name,
        phone=upstream_user.phone,
        mailing_address=upstream_user.mailing_address,
        billing_account_id=context.billing_account_id,
        crm_account_id=context.crm_account_id,
    )


class LifecycleOrchestrator:

    def __init__(self, repository: ProfileRepository, notifier: EmailSender):
        self.repository = repository
        self.notifier = notifier

    async def on_account_created(
        self,
        upstream_user: UpstreamUser,
        creation_token: str,
        context: AccountCreationContext,
    ) -> ProfileEntity:
        """Persist the new profile, then send the welcome email (best-effort)."""
        profile = await self.repository.create(build_profile(upstream_user, context))

        await self._notify(
            EmailMessageType.WELCOME,
            upstream_user,
            {"token": creation_token},
        )
        return profile

    async def on_login_success(self, user: UpstreamUser, jwt_id: Optional[str] = None) -> None:
        logger.debug(f"User {user.id} login; JWT id: {jwt_id}")

    async def on_forgot_password_request(self, user: UpstreamUser, token: str) -> bool:
        return await self._notify(EmailMessageType.FORGOT_PASSWORD, user, {"token": token})

    async def on_change_password_request(self, user: UpstreamUser) -> bool:
        return await self._notify(EmailMessageType.CHANGE_PASSWORD, user, {})

    async def on_resend_confirmation(self, user: UpstreamUser, token: str) -> bool:
        return await self._notify(EmailMessageType.RESEND_CONFIRMATION, user, {"token": token})

    async def _notify(self, kind: EmailMessageType, user: UpstreamUser, payload: Dict[str, Any]) -> bool:
        """Send a notification. Failures are logged and never raised."""
        payload = {"user_id": user.id, "first_name": user.first_name, **payload}

        try:
            result = await self.notifier.send_notification(kind, user.email, payload)
            if not result.success:
                raise NotificationFailure(result.error or "email not sent")
        except Exception as e:
            logger.error(f"Unable to send {kind.value} email to user {user.id}: {e}", exc_info=True)
            return False

        return True
