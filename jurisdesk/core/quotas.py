"""
Per-tier resource quotas

Quotas are checked before the mutating operation runs (check-then-act), with
no lock held between the count and the insert. Concurrent creations can
overshoot a limit by the number of requests racing the same check, so these
are soft limits. Strict enforcement would need an atomic
increment-if-below-limit operation in the credential store.
"""

from dataclasses import dataclass
from typing import Tuple

import structlog

from jurisdesk.core.capabilities import TIER_POLICIES
from jurisdesk.core.errors import QuotaExceeded
from jurisdesk.core.tenancy import TenantState
from jurisdesk.models.principal import TIER_ORDER, AccountTier
from jurisdesk.models.resources import ResourceClass
from jurisdesk.models.tenant import UNLIMITED

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    tier: AccountTier
    resource: ResourceClass
    current: int
    limit: int
    suggested_tiers: Tuple[AccountTier, ...] = ()


def limit_for(tenant: TenantState, tier: AccountTier, resource: ResourceClass) -> int:
    """Ceiling for a resource; ACCOUNTS uses the tenant's seat capacity per tier"""
    if resource == ResourceClass.ACCOUNTS:
        return tenant.account_capacity[tier]
    policy = TIER_POLICIES[tier]
    if resource == ResourceClass.CLIENTS:
        return policy.max_clients
    if resource == ResourceClass.PROJECTS:
        return policy.max_projects
    if resource == ResourceClass.STORAGE:
        return policy.max_storage_bytes
    raise ValueError(f"Unknown resource class: {resource}")


def within_limit(current: int, limit: int) -> bool:
    return limit == UNLIMITED or current < limit


def _suggest_tiers(tenant: TenantState, tier: AccountTier, resource: ResourceClass, current: int) -> Tuple[AccountTier, ...]:
    # Seat limits belong to the tenant, not to a tier upgrade
    if resource == ResourceClass.ACCOUNTS:
        return ()
    return tuple(
        candidate for candidate in TIER_ORDER
        if candidate != tier and within_limit(current, limit_for(tenant, candidate, resource))
    )


def check_quota(store, tenant: TenantState, tier: AccountTier, resource: ResourceClass) -> QuotaDecision:
    """Compare current usage with the limit for the tenant and tier"""
    tier = AccountTier(tier)
    limit = limit_for(tenant, tier, resource)
    if limit == UNLIMITED:
        # Unlimited never needs the count
        return QuotaDecision(allowed=True, tier=tier, resource=resource, current=0, limit=limit)

    current = store.count_resource(tenant.id, resource, tier)
    if within_limit(current, limit):
        return QuotaDecision(allowed=True, tier=tier, resource=resource, current=current, limit=limit)

    return QuotaDecision(
        allowed=False,
        tier=tier,
        resource=resource,
        current=current,
        limit=limit,
        suggested_tiers=_suggest_tiers(tenant, tier, resource, current),
    )


def enforce_quota(store, tenant: TenantState, tier: AccountTier, resource: ResourceClass) -> QuotaDecision:
    """Raise QuotaExceeded with current/limit counts when the quota is used up"""
    decision = check_quota(store, tenant, tier, resource)
    if not decision.allowed:
        logger.info(
            "quota_exceeded",
            tenant_id=str(tenant.id),
            resource=decision.resource.value,
            current=decision.current,
            limit=decision.limit,
        )
        raise QuotaExceeded(
            f"Account limit reached for {decision.resource.value}",
            currentAccount=decision.tier.value,
            resourceType=decision.resource.value,
            currentCount=decision.current,
            maxAllowed=decision.limit,
            suggestedAccounts=[t.value for t in decision.suggested_tiers],
        )
    return decision
