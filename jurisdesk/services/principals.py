"""
Principal provisioning shared by self-registration, tenant user management
and the admin console
"""

from fastapi import HTTPException, status
import structlog

from jurisdesk.core.passwords import hash_password
from jurisdesk.core.quotas import enforce_quota
from jurisdesk.core.tenancy import TenantState
from jurisdesk.models.principal import Principal
from jurisdesk.models.resources import ResourceClass
from jurisdesk.schemas.principal import PrincipalCreate
from jurisdesk.services.credential_store import SQLCredentialStore

logger = structlog.get_logger(__name__)


def create_principal(store: SQLCredentialStore, tenant: TenantState, data: PrincipalCreate) -> Principal:
    """Create a principal, enforcing the tenant's seat capacity for its tier"""
    enforce_quota(store, tenant, data.account_tier, ResourceClass.ACCOUNTS)

    if store.get_principal_by_email(data.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    principal = store.save(Principal(
        tenant_id=tenant.id,
        email=data.email,
        password_hash=hash_password(data.password),
        name=data.name,
        account_tier=data.account_tier,
        is_active=True,
    ))
    logger.info(f"User created: {principal.id} ({principal.account_tier.value}) in tenant {tenant.id}")
    return principal
