"""
Profile Sync Coordinator

Pushes a changed mailing address to every external system the profile is
linked to (billing and/or CRM). Calls run concurrently; the coordinator waits
for all of them and fails as a whole if any one failed.

There is no retry and no compensation here: if billing succeeds and CRM
fails, billing keeps the new address while CRM and the local record keep the
old one until a later successful update reconciles them.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from models import ProfileBase, ProfileEntity, SyncSystem
from services.change_detection import detect_address_change
from services.errors import SyncFailure

logger = logging.getLogger(__name__)


class AddressUpdater(Protocol):
    async def update_address(self, account_id: str, address: Dict[str, Any]) -> Any:
        ...


@dataclass(frozen=True)
class SyncTask:
    """Push one address to one external system"""
    system: SyncSystem
    account_id: str
    address: Dict[str, Any]


@dataclass
class SyncOutcome:
    address_changed: bool = False
    tasks: List[SyncTask] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.tasks


def merged_address(original: ProfileBase, proposed: ProfileBase) -> Dict[str, Any]:
    """The address the profile will hold once the update is persisted."""
    address = dict(original.mailing_address or {})
    address.update(proposed.mailing_address or {})
    return address


def build_sync_tasks(original: ProfileEntity, proposed: ProfileBase) -> List[SyncTask]:
    """One task per linked external system. Pure function of the linkage IDs."""
    address = merged_address(original, proposed)
    tasks = []

    if original.billing_account_id:
        tasks.append(SyncTask(SyncSystem.billing, original.billing_account_id, address))

    if original.crm_account_id:
        tasks.append(SyncTask(SyncSystem.crm, original.crm_account_id, address))

    return tasks


class SyncCoordinator:
    """Fans an address change out to billing and CRM."""

    def __init__(self, billing: Optional[AddressUpdater], crm: Optional[AddressUpdater]):
        self._updaters = {
            SyncSystem.billing: billing,
            SyncSystem.crm: crm,
        }

    async def synchronize(self, original: ProfileEntity, proposed: ProfileBase) -> SyncOutcome:
        delta = detect_address_change(original, proposed)
        if not delta.changed:
            return SyncOutcome()

        tasks = build_sync_tasks(original, proposed)
        if not tasks:
            logger.info(f"Address changed for profile {original.id}; no linked external systems")
            return SyncOutcome(address_changed=True)

        results = await asyncio.gather(
            *(self._run(task) for task in tasks),
            return_exceptions=True,
        )

        errors: Dict[str, BaseException] = {}
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                errors[task.system.value] = result
                logger.error(
                    f"Address sync to {task.system.value} failed for profile {original.id}: {result}"
                )

        if errors:
            raise SyncFailure(errors)

        logger.info(
            f"Address synced for profile {original.id} to "
            f"{', '.join(t.system.value for t in tasks)}"
        )
        return SyncOutcome(address_changed=True, tasks=tasks)

    async def _run(self, task: SyncTask) -> Any:
        updater = self._updaters.get(task.system)
        if updater is None:
            raise RuntimeError(f"No client configured for {task.system.value}")
        return await updater.update_address(task.account_id, task.address)
