# ==== AUTHENTICATION AND USER SCHEMAS ==== #

"""
Pydantic schemas for authentication, onboarding and user administration.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from easybill.business.statuses import UserStatus
from easybill.schemas.common import ORMModel


# ==== REQUESTS ==== #


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255, description="Username or email")
    password: str = Field(..., min_length=1, max_length=72)
    tenant_id: Optional[str] = Field(None, max_length=64)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    tenant_id: Optional[str] = Field(None, max_length=64)


class OnboardRequest(BaseModel):
    """Self-service signup: creates a tenant and its first administrator."""

    tenant_name: str = Field(..., min_length=1, max_length=128)
    business_type: Optional[str] = Field("Retail", max_length=64)
    gstin: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field("India", max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    contact_phone: Optional[str] = Field(None, max_length=32)

    admin_username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8, max_length=72)
    admin_first_name: Optional[str] = Field(None, max_length=100)
    admin_last_name: Optional[str] = Field(None, max_length=100)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=72)
    new_password: str = Field(..., min_length=8, max_length=72)


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[EmailStr] = None


class UserStatusRequest(BaseModel):
    status: UserStatus


# ==== RESPONSES ==== #


class UserInfo(ORMModel):
    id: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tenant_id: str
    roles: List[str] = []


class UserResponse(UserInfo):
    phone: Optional[str] = None
    status: str
    last_login: Optional[datetime] = None
    created_at: datetime


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserInfo
