"""
Audit log model - append-only record of state-changing actions
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime
from typing import Optional
import uuid

from jurisdesk.core.clock import utcnow


class AuditLog(SQLModel, table=True):
    """Immutable audit fact keyed by tenant and actor"""

    __tablename__ = "audit_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    action: str = Field(max_length=50, index=True, description="Verb, e.g. CREATE, DELETE, LOGIN")
    resource_type: str = Field(max_length=50, description="CLIENT, PROJECT, USER, ...")
    resource_id: str = Field(max_length=64)
    details: Optional[dict] = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
