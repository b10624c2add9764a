"""
Token verification for the profile API.

Bearer tokens are issued by the account-creation authority; this service only
verifies them (signature, expiry and, when configured, audience and issuer)
and hands the raw claims to the identity guard.
"""

from typing import Optional, Dict, Any
import logging

from jose import JWTError, jwt

from config import get_settings

logger = logging.getLogger(__name__)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT and return its claims, or None if verification fails"""
    settings = get_settings()

    options = {
        "verify_aud": bool(settings.JWT_AUDIENCE),
        "verify_iss": bool(settings.JWT_ISSUER),
    }

    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE or None,
            issuer=settings.JWT_ISSUER or None,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        return None
