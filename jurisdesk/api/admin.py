"""
Admin console API endpoints

``public_router`` holds only the admin login. Everything on ``router`` is
mounted behind the X-Admin-Key guard and works across tenants.
"""

from typing import List, Optional
import math
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr
from sqlalchemy import func
from sqlmodel import Session, select
import structlog

from jurisdesk.core.auth import TokenService, get_token_service
from jurisdesk.core.clock import utcnow
from jurisdesk.core.config import get_settings
from jurisdesk.core.database import get_session
from jurisdesk.core.dependencies import AdminKeyGuard, get_admin_guard, get_credential_store, secrets_match
from jurisdesk.core.tenancy import TenantState
from jurisdesk.models.principal import Principal
from jurisdesk.models.resources import Client, Project, ResourceClass
from jurisdesk.models.tenant import Tenant
from jurisdesk.schemas.principal import PrincipalCreate, PrincipalResponse, PrincipalUpdate
from jurisdesk.schemas.resources import AuditLogPage, AuditLogResponse, Pagination
from jurisdesk.schemas.tenant import TenantCreate, TenantResponse, TenantSummary, TenantUpdate
from jurisdesk.services.credential_store import SQLCredentialStore
from jurisdesk.services.principals import create_principal

logger = structlog.get_logger(__name__)
public_router = APIRouter()
router = APIRouter()

NULLABLE_TENANT_FIELDS = {"expires_at"}


class AdminLoginRequest(BaseModel):
    admin_key: str
    email: EmailStr
    password: str


class AdminLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AdminMetrics(BaseModel):
    total_tenants: int
    active_tenants: int
    total_users: int
    active_users: int
    total_clients: int
    total_projects: int


def _tenant_or_404(session: Session, tenant_id: uuid.UUID) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )
    return tenant


# ==================== LOGIN ====================

@public_router.post("/login", response_model=AdminLoginResponse)
async def admin_login(
    login_data: AdminLoginRequest,
    guard: AdminKeyGuard = Depends(get_admin_guard),
    tokens: TokenService = Depends(get_token_service),
):
    """Admin console login: shared key plus the configured admin credentials"""
    guard.verify(login_data.admin_key)

    settings = get_settings()
    email_ok = secrets_match(login_data.email.lower(), settings.ADMIN_EMAIL.lower())
    password_ok = secrets_match(login_data.password, settings.ADMIN_PASSWORD)
    if not (email_ok and password_ok):
        logger.warning("admin_login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials"
        )

    logger.info("admin_login", email=login_data.email)
    return AdminLoginResponse(access_token=tokens.issue_admin(settings.ADMIN_EMAIL))


# ==================== TENANTS ====================

@router.get("/tenants", response_model=List[TenantSummary])
async def list_tenants(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    session: Session = Depends(get_session),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """List all tenants with their row counts"""
    tenants = session.exec(
        select(Tenant).order_by(Tenant.created_at.desc()).offset(skip).limit(limit)
    ).all()

    summaries = []
    for tenant in tenants:
        user_count = session.exec(
            select(func.count()).select_from(Principal).where(Principal.tenant_id == tenant.id)
        ).one()
        summaries.append(TenantSummary(
            **TenantResponse.model_validate(tenant, from_attributes=True).model_dump(),
            user_count=user_count,
            client_count=store.count_resource(tenant.id, ResourceClass.CLIENTS),
            project_count=store.count_resource(tenant.id, ResourceClass.PROJECTS),
        ))
    return summaries


@router.post("/tenants", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    session: Session = Depends(get_session),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Create a new tenant"""
    if tenant_data.cnpj:
        existing = session.exec(select(Tenant).where(Tenant.cnpj == tenant_data.cnpj)).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="CNPJ already registered"
            )

    tenant = store.save(Tenant(**tenant_data.model_dump()))
    logger.info(f"Tenant created: {tenant.id}")
    return TenantResponse.model_validate(tenant, from_attributes=True)


@router.patch("/tenants/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: uuid.UUID,
    tenant_update: TenantUpdate,
    session: Session = Depends(get_session),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Activate/deactivate a tenant, move its expiry or change its seat capacities"""
    tenant = _tenant_or_404(session, tenant_id)

    for key, value in tenant_update.model_dump(exclude_unset=True).items():
        # Only expires_at is nullable; null clears the expiry
        if value is None and key not in NULLABLE_TENANT_FIELDS:
            continue
        setattr(tenant, key, value)
    tenant.updated_at = utcnow()

    tenant = store.save(tenant)
    logger.info(f"Tenant updated: {tenant.id}")
    return TenantResponse.model_validate(tenant, from_attributes=True)


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    tenant_id: uuid.UUID,
    session: Session = Depends(get_session),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Delete an empty tenant; tenants holding data must be deactivated instead"""
    tenant = _tenant_or_404(session, tenant_id)

    user_count = session.exec(
        select(func.count()).select_from(Principal).where(Principal.tenant_id == tenant_id)
    ).one()
    in_use = (
        user_count
        or store.count_resource(tenant_id, ResourceClass.CLIENTS)
        or store.count_resource(tenant_id, ResourceClass.PROJECTS)
    )
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a tenant with users, clients or projects"
        )

    store.delete(tenant)
    logger.info(f"Tenant deleted: {tenant_id}")
    return {"message": "Tenant deleted"}


# ==================== USERS ====================

@router.post(
    "/tenants/{tenant_id}/users",
    response_model=PrincipalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tenant_user(
    tenant_id: uuid.UUID,
    user_data: PrincipalCreate,
    session: Session = Depends(get_session),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Create a user in any tenant, still bounded by its seats per tier"""
    tenant = _tenant_or_404(session, tenant_id)
    user = create_principal(store, TenantState.from_tenant(tenant), user_data)
    return PrincipalResponse.model_validate(user, from_attributes=True)


@router.patch("/users/{user_id}", response_model=PrincipalResponse)
async def update_user(
    user_id: uuid.UUID,
    user_update: PrincipalUpdate,
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Deactivate a user or change its tier; effective from the next refresh"""
    user = store.get_principal(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    for key, value in user_update.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, key, value)
    user.updated_at = utcnow()

    user = store.save(user)
    logger.info(f"User updated: {user.id}")
    return PrincipalResponse.model_validate(user, from_attributes=True)


# ==================== AUDIT & METRICS ====================

@router.get("/audit-logs", response_model=AuditLogPage)
async def list_audit_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    tenant_id: Optional[uuid.UUID] = Query(default=None),
    action: Optional[str] = Query(default=None),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Audit trail across all tenants"""
    logs, total = store.list_audit(
        tenant_id=tenant_id,
        action=action,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return AuditLogPage(
        logs=[AuditLogResponse.model_validate(log, from_attributes=True) for log in logs],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get("/metrics", response_model=AdminMetrics)
async def get_metrics(session: Session = Depends(get_session)):
    """Platform-wide totals"""
    def count(model, *criteria) -> int:
        return session.exec(select(func.count()).select_from(model).where(*criteria)).one()

    return AdminMetrics(
        total_tenants=count(Tenant),
        active_tenants=count(Tenant, Tenant.is_active == True),  # noqa: E712
        total_users=count(Principal),
        active_users=count(Principal, Principal.is_active == True),  # noqa: E712
        total_clients=count(Client),
        total_projects=count(Project),
    )
