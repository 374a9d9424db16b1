"""
Tenant-scoped business rows counted by the quota enforcer

Only the columns the thin handlers and quota counts need are modelled here.
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, DateTime
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from jurisdesk.core.clock import utcnow


class ResourceClass(str, Enum):
    """Quota-tracked resources"""
    CLIENTS = "clients"
    PROJECTS = "projects"
    STORAGE = "storage"  # bytes across all stored files
    ACCOUNTS = "accounts"  # principals of one account tier


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Client(SQLModel, table=True):
    __tablename__ = "clients"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    name: str = Field(max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    client_id: uuid.UUID = Field(foreign_key="clients.id", index=True)
    title: str = Field(max_length=255)
    description: Optional[str] = None
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Transaction(SQLModel, table=True):
    """Cash-flow entry"""

    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    type: TransactionType = Field(nullable=False)
    amount: float = Field(gt=0)
    category: str = Field(max_length=100)
    description: Optional[str] = None
    occurred_on: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class StoredFile(SQLModel, table=True):
    """Metadata of an uploaded file; bytes live in external storage"""

    __tablename__ = "files"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    uploaded_by: uuid.UUID = Field(foreign_key="users.id")
    filename: str = Field(max_length=255)
    mimetype: str = Field(max_length=100)
    size: int = Field(ge=0)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
