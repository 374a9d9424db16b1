"""
Credential store: the narrow persistence interface the access-control core uses
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, Tuple
import uuid

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
import structlog

from jurisdesk.core.database import session_scope
from jurisdesk.models.audit_log import AuditLog
from jurisdesk.models.principal import AccountTier, Principal
from jurisdesk.models.resources import Client, Project, ResourceClass, StoredFile
from jurisdesk.models.tenant import Tenant

logger = structlog.get_logger(__name__)


class CredentialStore(Protocol):
    def get_tenant(self, tenant_id: uuid.UUID) -> Optional[Tenant]: ...

    def get_principal(self, principal_id: uuid.UUID) -> Optional[Principal]: ...

    def count_resource(
        self,
        tenant_id: uuid.UUID,
        resource: ResourceClass,
        tier: Optional[AccountTier] = None,
    ) -> int: ...

    def append_audit(self, entry: AuditLog) -> None: ...


class SQLCredentialStore:
    """CredentialStore over a SQLModel session"""

    def __init__(self, session: Session):
        self.session = session

    def get_tenant(self, tenant_id: uuid.UUID) -> Optional[Tenant]:
        return self.session.get(Tenant, tenant_id)

    def get_principal(self, principal_id: uuid.UUID) -> Optional[Principal]:
        return self.session.get(Principal, principal_id)

    def get_principal_by_email(self, email: str) -> Optional[Principal]:
        return self.session.exec(
            select(Principal).where(Principal.email == email)
        ).first()

    def count_resource(
        self,
        tenant_id: uuid.UUID,
        resource: ResourceClass,
        tier: Optional[AccountTier] = None,
    ) -> int:
        """Current usage of a resource for the tenant

        ``tier`` is required for ACCOUNTS, which counts principals of that tier
        (deactivated ones included, since they are never deleted).
        """
        if resource == ResourceClass.CLIENTS:
            query = select(func.count()).select_from(Client).where(Client.tenant_id == tenant_id)
        elif resource == ResourceClass.PROJECTS:
            query = select(func.count()).select_from(Project).where(Project.tenant_id == tenant_id)
        elif resource == ResourceClass.STORAGE:
            query = select(func.coalesce(func.sum(StoredFile.size), 0)).where(StoredFile.tenant_id == tenant_id)
        elif resource == ResourceClass.ACCOUNTS:
            if tier is None:
                raise ValueError("Account tier is required to count accounts")
            query = (
                select(func.count())
                .select_from(Principal)
                .where(Principal.tenant_id == tenant_id, Principal.account_tier == tier)
            )
        else:
            raise ValueError(f"Unknown resource class: {resource}")
        return int(self.session.exec(query).one())

    def save(self, row):
        """Insert or update one row and return it refreshed"""
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, row) -> None:
        self.session.delete(row)
        self.session.commit()

    def append_audit(self, entry: AuditLog) -> None:
        """Insert one audit row; audit rows are never updated or deleted"""
        try:
            self.session.add(entry)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def list_audit(
        self,
        tenant_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        """Audit rows newest first, with the unpaginated total"""
        query = select(AuditLog)
        count_query = select(func.count()).select_from(AuditLog)
        if tenant_id is not None:
            query = query.where(AuditLog.tenant_id == tenant_id)
            count_query = count_query.where(AuditLog.tenant_id == tenant_id)
        if action:
            query = query.where(AuditLog.action == action)
            count_query = count_query.where(AuditLog.action == action)

        rows = self.session.exec(
            query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit)
        ).all()
        total = int(self.session.exec(count_query).one())
        return list(rows), total


@contextmanager
def store_scope() -> Iterator[SQLCredentialStore]:
    """Store bound to its own session, for writes that run after the response"""
    with session_scope() as session:
        yield SQLCredentialStore(session)
