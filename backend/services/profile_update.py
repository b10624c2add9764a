"""
Profile Update Pipeline

Authorized update of a single profile:

    AUTHORIZING -> LOADING -> DETECTING -> SYNCING -> PERSISTING -> DONE

with early exits to DENIED (identity does not own the profile) or FAILED
(malformed identity, missing profile, sync or storage fault). A sync failure
blocks persistence. One pipeline instance handles one request; the
UpdateContext carries per-request state between stages.

Two concurrent updates to the same profile are not serialized: the last
write wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from models import ProfileEntity, ProfileUpdate
from services.errors import (
    AuthorizationDenied,
    ProfileNotFound,
    ProfileServiceError,
)
from services.change_detection import address_changed
from services.identity_guard import AccessDecision, IdentityInput, authorize_self_access
from services.profile_repository import ProfileRepository
from services.profile_sync import SyncCoordinator, SyncOutcome

logger = logging.getLogger(__name__)


class UpdateStage(str, Enum):
    START = "start"
    AUTHORIZING = "authorizing"
    LOADING = "loading"
    DETECTING = "detecting"
    SYNCING = "syncing"
    PERSISTING = "persisting"
    DONE = "done"
    DENIED = "denied"
    FAILED = "failed"


@dataclass
class UpdateContext:
    """Per-request state threaded through the pipeline stages"""
    identity: IdentityInput
    target_id: str
    payload: ProfileUpdate
    stage: UpdateStage = UpdateStage.START
    original: Optional[ProfileEntity] = None
    sync: Optional[SyncOutcome] = None
    persisted: Optional[ProfileEntity] = None


@dataclass
class UpdateOutcome:
    stage: UpdateStage
    failed_at: Optional[UpdateStage] = None
    error: Optional[ProfileServiceError] = None
    profile: Optional[ProfileEntity] = None
    sync: Optional[SyncOutcome] = None

    @property
    def ok(self) -> bool:
        return self.stage == UpdateStage.DONE

    @property
    def status_code(self) -> int:
        if self.error is not None:
            return self.error.status_code
        return 200

    @property
    def error_code(self) -> Optional[str]:
        return self.error.error_code if self.error is not None else None


def apply_update(entity: ProfileEntity, payload: ProfileUpdate) -> ProfileEntity:
    """
    Fields set on the payload replace stored values; address keys merge.

    An explicit null address is not a change, so the stored address stays in
    step with billing and CRM.
    """
    changes: Dict[str, Any] = payload.model_dump(exclude_unset=True)

    if "mailing_address" in changes and changes["mailing_address"] is None:
        del changes["mailing_address"]

    if "mailing_address" in changes:
        address = dict(entity.mailing_address or {})
        address.update(changes["mailing_address"])
        changes["mailing_address"] = address

    return entity.model_copy(update=changes)


class ProfileUpdatePipeline:

    def __init__(self, repository: ProfileRepository, sync: SyncCoordinator):
        self.repository = repository
        self.sync = sync

    async def handle_update(
        self,
        identity: IdentityInput,
        target_id: str,
        payload: ProfileUpdate,
    ) -> UpdateOutcome:
        ctx = UpdateContext(identity=identity, target_id=target_id, payload=payload)

        try:
            await self._authorize(ctx)
            await self._load(ctx)
            await self._sync(ctx)
            await self._persist(ctx)
        except AuthorizationDenied as e:
            logger.warning(f"Profile update denied for target {target_id}")
            return UpdateOutcome(UpdateStage.DENIED, error=e)
        except ProfileServiceError as e:
            logger.error(f"Profile update for {target_id} failed while {ctx.stage.value}: {e.message}")
            return UpdateOutcome(UpdateStage.FAILED, failed_at=ctx.stage, error=e, sync=ctx.sync)

        ctx.stage = UpdateStage.DONE
        return UpdateOutcome(UpdateStage.DONE, profile=ctx.persisted, sync=ctx.sync)

    async def _authorize(self, ctx: UpdateContext) -> None:
        ctx.stage = UpdateStage.AUTHORIZING
        if authorize_self_access(ctx.identity, ctx.target_id) is AccessDecision.FORBIDDEN:
            raise AuthorizationDenied(f"Identity may not update profile {ctx.target_id}")

    async def _load(self, ctx: UpdateContext) -> None:
        ctx.stage = UpdateStage.LOADING
        ctx.original = await self.repository.load_by_id(ctx.target_id)
        if ctx.original is None:
            raise ProfileNotFound(f"Profile {ctx.target_id} not found")

    async def _sync(self, ctx: UpdateContext) -> None:
        ctx.stage = UpdateStage.DETECTING
        if not address_changed(ctx.original, ctx.payload):
            return

        ctx.stage = UpdateStage.SYNCING
        ctx.sync = await self.sync.synchronize(ctx.original, ctx.payload)

    async def _persist(self, ctx: UpdateContext) -> None:
        ctx.stage = UpdateStage.PERSISTING
        ctx.persisted = await self.repository.write(apply_update(ctx.original, ctx.payload))
