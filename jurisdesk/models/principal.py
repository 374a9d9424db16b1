"""
Principal model - authenticated users scoped to one tenant
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from jurisdesk.core.clock import utcnow


class AccountTier(str, Enum):
    """Account tiers, lowest to highest"""
    SIMPLE = "SIMPLE"
    COMPOSITE = "COMPOSITE"
    MANAGERIAL = "MANAGERIAL"


TIER_ORDER = (AccountTier.SIMPLE, AccountTier.COMPOSITE, AccountTier.MANAGERIAL)


class Principal(SQLModel, table=True):
    """User account with tenant isolation"""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Owning tenant, never reassigned")

    # Authentication
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)
    name: str = Field(nullable=False, max_length=200)

    # Capability gating
    account_tier: AccountTier = Field(default=AccountTier.SIMPLE, nullable=False, index=True)

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
