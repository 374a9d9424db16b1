"""
Request/response schemas for tenant-scoped handlers
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Any, Dict, List, Optional
from datetime import datetime
import uuid

from jurisdesk.models.resources import TransactionType


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    client_id: uuid.UUID
    description: Optional[str] = None


class TransactionCreate(BaseModel):
    type: TransactionType
    amount: float = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    occurred_on: datetime


class FileCreate(BaseModel):
    """Metadata of a file already written to external storage"""
    filename: str = Field(..., min_length=1, max_length=255)
    mimetype: str = Field(..., max_length=100)
    size: int = Field(..., ge=0)


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    action: str
    resource_type: str
    resource_id: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AuditLogPage(BaseModel):
    logs: List[AuditLogResponse]
    pagination: Pagination


class DashboardResponse(BaseModel):
    total_clients: int
    total_projects: int
    monthly_income: float = 0
    monthly_expenses: float = 0
    monthly_balance: float = 0
    has_financial_access: bool
