"""
Pydantic schemas for tenant administration
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import uuid

from jurisdesk.models.tenant import PlanType


class TenantCreate(BaseModel):
    company_name: str = Field(..., min_length=3, max_length=255)
    cnpj: Optional[str] = Field(default=None, max_length=32)
    plan_type: PlanType
    expires_at: Optional[datetime] = None
    max_simple_accounts: int = Field(default=1, ge=-1)
    max_composite_accounts: int = Field(default=1, ge=-1)
    max_managerial_accounts: int = Field(default=1, ge=-1)


class TenantUpdate(BaseModel):
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None
    plan_type: Optional[PlanType] = None
    max_simple_accounts: Optional[int] = Field(default=None, ge=-1)
    max_composite_accounts: Optional[int] = Field(default=None, ge=-1)
    max_managerial_accounts: Optional[int] = Field(default=None, ge=-1)


class TenantResponse(BaseModel):
    id: uuid.UUID
    company_name: str
    cnpj: Optional[str] = None
    plan_type: PlanType
    is_active: bool
    expires_at: Optional[datetime] = None
    max_simple_accounts: int
    max_composite_accounts: int
    max_managerial_accounts: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class TenantSummary(TenantResponse):
    """Tenant with row counts for the admin listing"""
    user_count: int = 0
    client_count: int = 0
    project_count: int = 0
