"""
Pydantic schemas for authentication and tokens
"""

from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum
import uuid

from jurisdesk.models.principal import AccountTier


class TokenType(str, Enum):
    """Value of the ``type`` claim"""
    ACCESS = "access"
    REFRESH = "refresh"
    ADMIN = "admin"


class TokenClaims(BaseModel):
    """Verified JWT claims"""
    principal_id: uuid.UUID = Field(..., description="User ID (sub)")
    tenant_id: uuid.UUID = Field(..., description="Tenant ID")
    account_tier: AccountTier = Field(..., description="Tier snapshotted at issuance")
    token_type: TokenType
    issued_at: datetime
    expires_at: datetime


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
