"""
Profile service error taxonomy.

Each error carries the HTTP status and the public error code it maps to.
Sync and persist faults share the generic SERVER_ERROR code so responses
never reveal which external system failed.
"""

from typing import Dict, Optional


class ProfileServiceError(Exception):
    """Base exception for profile pipeline errors"""
    status_code: int = 500
    error_code: str = "SERVER_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class AuthorizationDenied(ProfileServiceError):
    """Identity does not own the target resource"""
    status_code = 403
    error_code = "FORBIDDEN"


class MalformedIdentityError(ProfileServiceError):
    """Token payload could not be turned into an Identity"""
    status_code = 500


class ProfileNotFound(ProfileServiceError):
    """Target profile does not exist"""
    status_code = 404
    error_code = "NOT_FOUND"


class SyncFailure(ProfileServiceError):
    """One or more external-system updates failed"""
    status_code = 500

    def __init__(self, errors: Optional[Dict[str, BaseException]] = None):
        self.errors = errors or {}
        systems = ", ".join(sorted(self.errors)) or "unknown"
        super().__init__(f"Address sync failed for: {systems}")


class PersistFailure(ProfileServiceError):
    """Storage fault while loading or writing a profile"""
    status_code = 500


class NotificationFailure(ProfileServiceError):
    """Best-effort notification could not be delivered. Never surfaced."""


class ExternalServiceError(Exception):
    """Raised by billing/CRM clients on transport errors or non-2xx responses"""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code
