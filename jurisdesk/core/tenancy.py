"""
Tenant validation for multi-tenant isolation

Tenant state is re-read on every authenticated request instead of being
trusted from token claims, so a tenant deactivated mid-session is rejected on
its next request even though the access token is still valid.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional
import uuid

import structlog

from jurisdesk.core.clock import as_utc, utcnow
from jurisdesk.core.errors import TenantExpired, TenantInactive, TenantNotFound
from jurisdesk.models.principal import AccountTier
from jurisdesk.models.tenant import PlanType, Tenant

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TenantState:
    """Snapshot of a tenant that passed validation"""
    id: uuid.UUID
    company_name: str
    plan_type: PlanType
    expires_at: Optional[datetime]
    account_capacity: Dict[AccountTier, int]

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "TenantState":
        return cls(
            id=tenant.id,
            company_name=tenant.company_name,
            plan_type=PlanType(tenant.plan_type),
            expires_at=as_utc(tenant.expires_at),
            account_capacity={tier: tenant.capacity_for(tier) for tier in AccountTier},
        )


def validate_tenant(store, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> TenantState:
    """Resolve a tenant and reject it unless it is present, active and unexpired"""
    tenant = store.get_tenant(tenant_id)
    if tenant is None:
        logger.warning("tenant_not_found", tenant_id=str(tenant_id))
        raise TenantNotFound(tenantId=str(tenant_id))

    if not tenant.is_active:
        logger.info("tenant_inactive", tenant_id=str(tenant_id))
        raise TenantInactive(tenantId=str(tenant_id))

    expires_at = as_utc(tenant.expires_at)
    if expires_at is not None and expires_at < (now or utcnow()):
        logger.info("tenant_expired", tenant_id=str(tenant_id), expires_at=expires_at.isoformat())
        raise TenantExpired(tenantId=str(tenant_id), expiredAt=expires_at.isoformat())

    return TenantState.from_tenant(tenant)
