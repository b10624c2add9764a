from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional, Any, Dict
from datetime import datetime


# ==================== IDENTITY ====================
class Identity(BaseModel):
    """Authenticated principal built from verified token claims"""
    id: str = Field(..., min_length=1, validation_alias=AliasChoices("id", "sub"))
    email: Optional[str] = None
    jti: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


# ==================== PROFILE ====================
class ProfileBase(BaseModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    mailing_address: Optional[Dict[str, Any]] = None


class ProfileEntity(ProfileBase):
    """Persisted user profile, including the external linkage IDs"""
    id: str
    billing_account_id: Optional[str] = None
    crm_account_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(ProfileBase):
    """Inbound update payload. Linkage IDs are owned by account creation."""
    model_config = ConfigDict(extra="ignore")


class ProfileResponse(ProfileEntity):
    """Response model for profile endpoints"""
    pass


# ==================== ACCOUNT LIFECYCLE (internal) ====================
class UpstreamUser(BaseModel):
    """User record as created by the account-creation authority"""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    mailing_address: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class AccountCreatedRequest(BaseModel):
    user: UpstreamUser
    token: str = Field(..., description="Email confirmation token")
    billing_account_id: Optional[str] = None
    crm_account_id: Optional[str] = None


class AccountEventRequest(BaseModel):
    user: UpstreamUser
    token: Optional[str] = None
    jwt_id: Optional[str] = None
