from jurisdesk.models.principal import Principal, AccountTier, TIER_ORDER
from jurisdesk.models.tenant import Tenant, PlanType, UNLIMITED
from jurisdesk.models.audit_log import AuditLog
from jurisdesk.models.resources import Client, Project, Transaction, TransactionType, StoredFile, ResourceClass
