"""
Shared FastAPI dependencies for the profile routers.
"""

from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from email_integration import EmailSender
from lifecycle import LifecycleOrchestrator
from services.profile_repository import ProfileRepository
from services.profile_sync import SyncCoordinator
from services.profile_update import ProfileUpdatePipeline


def get_profile_repository(db: AsyncSession = Depends(get_db)) -> ProfileRepository:
    return ProfileRepository(db)


def get_sync_coordinator(request: Request) -> SyncCoordinator:
    """Billing/CRM clients are created once in the app lifespan and shared."""
    return SyncCoordinator(
        billing=getattr(request.app.state, "billing_client", None),
        crm=getattr(request.app.state, "crm_client", None),
    )


def get_update_pipeline(
    repository: ProfileRepository = Depends(get_profile_repository),
    sync: SyncCoordinator = Depends(get_sync_coordinator),
) -> ProfileUpdatePipeline:
    return ProfileUpdatePipeline(repository, sync)


@lru_cache()
def get_email_sender() -> EmailSender:
    return EmailSender()


def get_lifecycle_orchestrator(
    repository: ProfileRepository = Depends(get_profile_repository),
    notifier: EmailSender = Depends(get_email_sender),
) -> LifecycleOrchestrator:
    return LifecycleOrchestrator(repository, notifier)
