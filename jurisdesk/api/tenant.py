"""
Tenant-scoped API endpoints

Every route runs behind the request pipeline; queries are always filtered by
the tenant id from the verified token, and rows of other tenants are reported
as not found.
"""

from datetime import timedelta
from typing import List, Optional
import math
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlmodel import Session, select
import structlog

from jurisdesk.core.capabilities import Capability, has_feature
from jurisdesk.core.clock import utcnow
from jurisdesk.core.database import get_session
from jurisdesk.core.dependencies import (
    RequestContext,
    get_credential_store,
    get_request_context,
    require_capability,
)
from jurisdesk.core.quotas import enforce_quota
from jurisdesk.models.principal import Principal
from jurisdesk.models.resources import Client, Project, ResourceClass, StoredFile, Transaction, TransactionType
from jurisdesk.schemas.principal import PrincipalCreate, PrincipalResponse
from jurisdesk.schemas.resources import (
    AuditLogPage,
    AuditLogResponse,
    ClientCreate,
    DashboardResponse,
    FileCreate,
    Pagination,
    ProjectCreate,
    TransactionCreate,
)
from jurisdesk.services.audit import AuditRecorder, get_audit_recorder
from jurisdesk.services.credential_store import SQLCredentialStore
from jurisdesk.services.principals import create_principal

logger = structlog.get_logger(__name__)
router = APIRouter()


# ==================== DASHBOARD ====================

@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    context: RequestContext = Depends(get_request_context),
    store: SQLCredentialStore = Depends(get_credential_store),
    session: Session = Depends(get_session),
):
    """Summary counts; financial figures only for tiers with the financial dashboard"""
    financial = has_feature(context.account_tier, "dashboard_financial")
    income = expenses = 0.0

    if financial:
        since = utcnow() - timedelta(days=30)
        totals = session.exec(
            select(Transaction.type, func.coalesce(func.sum(Transaction.amount), 0))
            .where(Transaction.tenant_id == context.tenant_id, Transaction.occurred_on >= since)
            .group_by(Transaction.type)
        ).all()
        for tx_type, total in totals:
            if tx_type == TransactionType.INCOME:
                income = float(total)
            else:
                expenses = float(total)

    return DashboardResponse(
        total_clients=store.count_resource(context.tenant_id, ResourceClass.CLIENTS),
        total_projects=store.count_resource(context.tenant_id, ResourceClass.PROJECTS),
        monthly_income=income,
        monthly_expenses=expenses,
        monthly_balance=income - expenses,
        has_financial_access=financial,
    )


# ==================== CLIENTS ====================

@router.get("/clients", response_model=List[Client])
async def list_clients(
    context: RequestContext = Depends(require_capability(Capability.CLIENTS)),
    session: Session = Depends(get_session),
):
    """List clients of the tenant"""
    return session.exec(
        select(Client)
        .where(Client.tenant_id == context.tenant_id)
        .order_by(Client.created_at.desc())
    ).all()


@router.post("/clients", response_model=Client, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    background_tasks: BackgroundTasks,
    context: RequestContext = Depends(require_capability(Capability.CLIENTS)),
    store: SQLCredentialStore = Depends(get_credential_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Create a client within the tier's client quota"""
    enforce_quota(store, context.tenant, context.account_tier, ResourceClass.CLIENTS)

    client = store.save(Client(tenant_id=context.tenant_id, **client_data.model_dump()))
    audit.schedule(
        background_tasks, context.principal_id, context.tenant_id,
        "CREATE", "CLIENT", client.id, {"clientName": client.name},
    )
    logger.info(f"Client created: {client.id}")
    return client


@router.delete("/clients/{client_id}")
async def delete_client(
    client_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    context: RequestContext = Depends(require_capability(Capability.CLIENTS)),
    store: SQLCredentialStore = Depends(get_credential_store),
    session: Session = Depends(get_session),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Delete a client that has no projects"""
    client = session.get(Client, client_id)
    if not client or client.tenant_id != context.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )

    project_count = session.exec(
        select(func.count()).select_from(Project)
        .where(Project.client_id == client_id, Project.tenant_id == context.tenant_id)
    ).one()
    if project_count > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete a client with projects"
        )

    client_name = client.name
    store.delete(client)
    audit.schedule(
        background_tasks, context.principal_id, context.tenant_id,
        "DELETE", "CLIENT", client_id, {"clientName": client_name},
    )
    return {"message": "Client deleted"}


# ==================== PROJECTS ====================

@router.get("/projects", response_model=List[Project])
async def list_projects(
    context: RequestContext = Depends(require_capability(Capability.PROJECTS)),
    session: Session = Depends(get_session),
):
    """List projects of the tenant"""
    return session.exec(
        select(Project)
        .where(Project.tenant_id == context.tenant_id)
        .order_by(Project.created_at.desc())
    ).all()


@router.post("/projects", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    background_tasks: BackgroundTasks,
    context: RequestContext = Depends(require_capability(Capability.PROJECTS)),
    store: SQLCredentialStore = Depends(get_credential_store),
    session: Session = Depends(get_session),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Create a project for one of the tenant's clients"""
    client = session.get(Client, project_data.client_id)
    if not client or client.tenant_id != context.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )

    enforce_quota(store, context.tenant, context.account_tier, ResourceClass.PROJECTS)

    project = store.save(Project(tenant_id=context.tenant_id, **project_data.model_dump()))
    audit.schedule(
        background_tasks, context.principal_id, context.tenant_id,
        "CREATE", "PROJECT", project.id, {"projectTitle": project.title},
    )
    return project


# ==================== CASH FLOW ====================

@router.get("/transactions", response_model=List[Transaction])
async def list_transactions(
    context: RequestContext = Depends(require_capability(Capability.CASH_FLOW)),
    session: Session = Depends(get_session),
):
    """List cash-flow transactions"""
    return session.exec(
        select(Transaction)
        .where(Transaction.tenant_id == context.tenant_id)
        .order_by(Transaction.occurred_on.desc())
    ).all()


@router.post("/transactions", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    transaction_data: TransactionCreate,
    background_tasks: BackgroundTasks,
    context: RequestContext = Depends(require_capability(Capability.CASH_FLOW)),
    store: SQLCredentialStore = Depends(get_credential_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Record an income or expense"""
    transaction = store.save(Transaction(tenant_id=context.tenant_id, **transaction_data.model_dump()))
    audit.schedule(
        background_tasks, context.principal_id, context.tenant_id,
        "CREATE", "TRANSACTION", transaction.id,
        {"type": transaction.type.value, "amount": transaction.amount, "category": transaction.category},
    )
    return transaction


# ==================== FILES ====================

@router.post("/files", response_model=StoredFile, status_code=status.HTTP_201_CREATED)
async def register_file(
    file_data: FileCreate,
    background_tasks: BackgroundTasks,
    context: RequestContext = Depends(get_request_context),
    store: SQLCredentialStore = Depends(get_credential_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Register an uploaded file against the tier's storage quota"""
    enforce_quota(store, context.tenant, context.account_tier, ResourceClass.STORAGE)

    stored = store.save(StoredFile(
        tenant_id=context.tenant_id,
        uploaded_by=context.principal_id,
        **file_data.model_dump(),
    ))
    audit.schedule(
        background_tasks, context.principal_id, context.tenant_id,
        "CREATE", "FILE", stored.id, {"filename": stored.filename, "size": stored.size},
    )
    return stored


# ==================== AUDIT & USERS ====================

@router.get("/audit-logs", response_model=AuditLogPage)
async def list_audit_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    action: Optional[str] = Query(default=None),
    context: RequestContext = Depends(require_capability(Capability.AUDIT_LOGS)),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Audit trail of the caller's own tenant"""
    logs, total = store.list_audit(
        tenant_id=context.tenant_id,
        action=action,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return AuditLogPage(
        logs=[AuditLogResponse.model_validate(log, from_attributes=True) for log in logs],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.get("/users", response_model=List[PrincipalResponse])
async def list_users(
    context: RequestContext = Depends(require_capability(Capability.USER_MANAGEMENT)),
    session: Session = Depends(get_session),
):
    """List users of the tenant"""
    users = session.exec(
        select(Principal).where(Principal.tenant_id == context.tenant_id)
    ).all()
    return [PrincipalResponse.model_validate(user, from_attributes=True) for user in users]


@router.post("/users", response_model=PrincipalResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: PrincipalCreate,
    background_tasks: BackgroundTasks,
    context: RequestContext = Depends(require_capability(Capability.USER_MANAGEMENT)),
    store: SQLCredentialStore = Depends(get_credential_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Create a user in the caller's tenant, bounded by the tenant's seats per tier"""
    user = create_principal(store, context.tenant, user_data)
    audit.schedule(
        background_tasks, context.principal_id, context.tenant_id,
        "CREATE", "USER", user.id,
        {"email": user.email, "accountTier": user.account_tier.value},
    )
    return PrincipalResponse.model_validate(user, from_attributes=True)
