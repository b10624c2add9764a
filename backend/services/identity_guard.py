"""
Identity Guard

Self-access authorization: a caller may only read or mutate the profile
whose id matches the subject of its verified token.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Union
import logging

from pydantic import ValidationError

from models import Identity
from services.errors import MalformedIdentityError

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"


IdentityInput = Union[Identity, Mapping[str, Any], None]


def parse_identity(claims: IdentityInput) -> Optional[Identity]:
    """
    Turn verified token claims into an Identity.

    Returns None when no identity was supplied. Raises MalformedIdentityError
    when claims are present but cannot be parsed.
    """
    if claims is None:
        return None
    if isinstance(claims, Identity):
        return claims
    if not isinstance(claims, Mapping):
        raise MalformedIdentityError(f"Unexpected identity payload type: {type(claims).__name__}")

    try:
        return Identity.model_validate(dict(claims))
    except ValidationError as e:
        logger.error(f"Malformed identity payload: {e.error_count()} validation error(s)")
        raise MalformedIdentityError("Identity payload could not be parsed") from e


def authorize_self_access(identity: IdentityInput, target_id: str) -> AccessDecision:
    """ALLOWED iff an identity is present and its id equals target_id."""
    parsed = parse_identity(identity)

    if parsed is None or parsed.id != target_id:
        return AccessDecision.FORBIDDEN

    return AccessDecision.ALLOWED
