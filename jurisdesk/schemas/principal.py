"""
Pydantic schemas for principals (users)
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Optional
from datetime import datetime
import uuid

from jurisdesk.models.principal import AccountTier


class PrincipalCreate(BaseModel):
    """User creation inside an existing tenant"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    name: str = Field(..., min_length=2, max_length=200)
    account_tier: AccountTier = Field(default=AccountTier.SIMPLE)


class RegisterRequest(PrincipalCreate):
    """Self-registration against an existing tenant"""
    tenant_id: uuid.UUID


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)


class PrincipalUpdate(BaseModel):
    """Administrative changes; tier changes apply from the next token refresh"""
    is_active: Optional[bool] = None
    account_tier: Optional[AccountTier] = None


class PrincipalResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    account_tier: AccountTier
    tenant_id: uuid.UUID
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: PrincipalResponse
