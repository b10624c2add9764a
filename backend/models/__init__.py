from .schemas import (
    Identity,
    ProfileBase, ProfileEntity, ProfileUpdate, ProfileResponse,
    UpstreamUser, AccountCreatedRequest, AccountEventRequest,
)
from .enums import SyncSystem, AccountEvent

__all__ = [
    'Identity',
    'ProfileBase', 'ProfileEntity', 'ProfileUpdate', 'ProfileResponse',
    'UpstreamUser', 'AccountCreatedRequest', 'AccountEventRequest',
    'SyncSystem', 'AccountEvent',
]
