"""
Tenant model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from jurisdesk.core.clock import utcnow
from jurisdesk.models.principal import AccountTier

UNLIMITED = -1


class PlanType(str, Enum):
    """Subscription plan of the tenant (independent from principal tiers)"""
    SIMPLE = "SIMPLE"
    COMPOSITE = "COMPOSITE"
    MANAGERIAL = "MANAGERIAL"


class Tenant(SQLModel, table=True):
    """Subscribing law firm; the unit of data isolation"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_name: str = Field(index=True, max_length=255)
    cnpj: Optional[str] = Field(default=None, unique=True, max_length=32, description="Company registry number")

    # Subscription
    plan_type: PlanType = Field(default=PlanType.SIMPLE, nullable=False)
    is_active: bool = Field(default=True, index=True)
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
        description="Null means the subscription never expires",
    )

    # Seats per account tier, -1 = unlimited
    max_simple_accounts: int = Field(default=1)
    max_composite_accounts: int = Field(default=1)
    max_managerial_accounts: int = Field(default=1)

    settings: Optional[dict] = Field(default_factory=dict, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))

    def capacity_for(self, tier: AccountTier) -> int:
        """Seat limit configured for the given account tier"""
        capacities = {
            AccountTier.SIMPLE: self.max_simple_accounts,
            AccountTier.COMPOSITE: self.max_composite_accounts,
            AccountTier.MANAGERIAL: self.max_managerial_accounts,
        }
        return capacities[tier]
