"""
Account-creation authority callbacks (/api/internal/accounts)

Authenticated with the internal API key, not a user token.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from lifecycle import AccountCreationContext, LifecycleOrchestrator
from middleware.internal_auth import InternalService, require_internal_service
from models import AccountCreatedRequest, AccountEvent, AccountEventRequest, ProfileResponse
from routers.dependencies import get_lifecycle_orchestrator
from services.errors import PersistFailure

logger = logging.getLogger(__name__)


async def account_created(
    request: AccountCreatedRequest,
    service: InternalService = Depends(require_internal_service),
    orchestrator: LifecycleOrchestrator = Depends(get_lifecycle_orchestrator),
):
    """Provision the local profile for an account the authority just created"""
    logger.info(f"Account created callback from {service.name} for user {request.user.id}")

    context = AccountCreationContext(
        billing_account_id=request.billing_account_id,
        crm_account_id=request.crm_account_id,
    )
    try:
        profile = await orchestrator.on_account_created(request.user, request.token, context)
    except PersistFailure:
        return JSONResponse(status_code=500, content={"error": "SERVER_ERROR"})

    return ProfileResponse.model_validate(profile.model_dump())


async def account_event(
    event: str,
    request: AccountEventRequest,
    service: InternalService = Depends(require_internal_service),
    orchestrator: LifecycleOrchestrator = Depends(get_lifecycle_orchestrator),
):
    """Pass-through hooks: login success and the password/confirmation emails"""
    try:
        kind = AccountEvent(event)
    except ValueError:
        return JSONResponse(status_code=404, content={"error": "NOT_FOUND"})

    delivered = True
    if kind is AccountEvent.login_success:
        await orchestrator.on_login_success(request.user, request.jwt_id)
    elif kind is AccountEvent.forgot_password:
        delivered = await orchestrator.on_forgot_password_request(request.user, request.token or "")
    elif kind is AccountEvent.change_password:
        delivered = await orchestrator.on_change_password_request(request.user)
    elif kind is AccountEvent.resend_confirmation:
        delivered = await orchestrator.on_resend_confirmation(request.user, request.token or "")

    return {"event": kind.value, "accepted": True, "delivered": delivered}


ROUTES = [
    # (method, path, handler, status)
    ("POST", "", account_created, status.HTTP_201_CREATED),
    ("POST", "/events/{event}", account_event, status.HTTP_202_ACCEPTED),
]

router = APIRouter(prefix="/internal/accounts", tags=["Internal"])

for method, path, handler, status_code in ROUTES:
    router.add_api_route(path, handler, methods=[method], status_code=status_code)
