"""
Authentication Dependencies

Provides:
- get_token_claims: verified bearer-token claims, 401 when missing or invalid

The claims are deliberately left unparsed here; turning them into an Identity
(and rejecting malformed payloads) is the identity guard's job.
"""

from typing import Any, Dict
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from services.auth import decode_token
from logging_config import set_request_context
from sentry_integration import set_user

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Dict[str, Any]:
    """
    Extract verified claims from the bearer token.
    Raises 401 if no token or invalid token.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    claims = decode_token(credentials.credentials)

    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    subject = claims.get("id") or claims.get("sub")
    if isinstance(subject, str):
        set_request_context(user_id=subject)
        set_user(subject, claims.get("email"))

    return claims
