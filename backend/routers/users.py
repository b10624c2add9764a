"""
User profile endpoints (/api/users)

Callers may only read or update their own profile. The routing table below is
the single place where methods and paths are bound to handlers.
"""

from typing import Any, Dict
import logging

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from middleware.auth import get_token_claims
from models import ProfileResponse, ProfileUpdate
from routers.dependencies import get_profile_repository, get_update_pipeline
from services.errors import MalformedIdentityError, PersistFailure, ProfileServiceError
from services.identity_guard import AccessDecision, authorize_self_access
from services.profile_repository import ProfileRepository
from services.profile_update import ProfileUpdatePipeline

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error})


async def get_user_by_id(
    user_id: str,
    claims: Dict[str, Any] = Depends(get_token_claims),
    repository: ProfileRepository = Depends(get_profile_repository),
):
    """GET a user's own profile"""
    try:
        decision = authorize_self_access(claims, user_id)
    except MalformedIdentityError:
        return error_response(500, "SERVER_ERROR")

    if decision is AccessDecision.FORBIDDEN:
        return error_response(403, "FORBIDDEN")

    try:
        profile = await repository.load_by_id(user_id)
    except PersistFailure:
        return error_response(500, "SERVER_ERROR")

    if profile is None:
        return error_response(404, "NOT_FOUND")

    return ProfileResponse.model_validate(profile.model_dump())


async def save_user(
    user_id: str,
    payload: ProfileUpdate = Body(...),
    claims: Dict[str, Any] = Depends(get_token_claims),
    pipeline: ProfileUpdatePipeline = Depends(get_update_pipeline),
):
    """
    PUT a user's own profile.

    A changed mailing address is pushed to billing and CRM before the profile
    is saved; if that push fails nothing is saved.
    """
    outcome = await pipeline.handle_update(claims, user_id, payload)

    if not outcome.ok:
        return error_response(outcome.status_code, outcome.error_code or ProfileServiceError.error_code)

    return ProfileResponse.model_validate(outcome.profile.model_dump())


ROUTES = [
    # (method, path, handler)
    ("GET", "/{user_id}", get_user_by_id),
    ("PUT", "/{user_id}", save_user),
]

router = APIRouter(prefix="/users", tags=["Users"])

for method, path, handler in ROUTES:
    router.add_api_route(
        path,
        handler,
        methods=[method],
        response_model=ProfileResponse,
        responses={403: {"description": "Forbidden"}, 404: {"description": "Not found"}},
    )
