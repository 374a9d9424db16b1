"""
Audit recorder

Audit completeness is best-effort: the business operation that triggered a
record is authoritative, so a failed audit write is logged and dropped
rather than failing or rolling back the request.
"""

from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, Optional
import uuid

from fastapi import BackgroundTasks
import structlog

from jurisdesk.core.errors import AuditWriteFailed
from jurisdesk.models.audit_log import AuditLog
from jurisdesk.services.credential_store import CredentialStore, store_scope

logger = structlog.get_logger(__name__)

_SENSITIVE_KEY_PATTERNS = ("password", "token", "secret", "authorization", "api_key")
_REDACTED_VALUE = "[REDACTED]"


def sanitize_details(value: Any) -> Any:
    """Recursively redact credential-like keys from a detail payload"""
    if isinstance(value, dict):
        sanitized = {}
        for raw_key, raw_value in value.items():
            key = str(raw_key)
            if any(pattern in key.lower() for pattern in _SENSITIVE_KEY_PATTERNS):
                sanitized[key] = _REDACTED_VALUE
            else:
                sanitized[key] = sanitize_details(raw_value)
        return sanitized
    if isinstance(value, (list, tuple)):
        return [sanitize_details(item) for item in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


class AuditRecorder:
    """Appends audit records through a credential store"""

    def __init__(self, store_factory: Callable[[], AbstractContextManager[CredentialStore]] = store_scope):
        self._store_factory = store_factory

    def record(
        self,
        actor_id: uuid.UUID,
        tenant_id: uuid.UUID,
        action: str,
        resource_type: str,
        resource_id: Any,
        detail: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Append one record; returns False if the write failed"""
        entry = AuditLog(
            user_id=actor_id,
            tenant_id=tenant_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            details=sanitize_details(detail or {}),
        )
        try:
            with self._store_factory() as store:
                store.append_audit(entry)
        except Exception as exc:
            failure = AuditWriteFailed(str(exc))
            logger.warning(
                "audit_write_failed",
                kind=failure.kind,
                tenant_id=str(tenant_id),
                actor_id=str(actor_id),
                action=action,
                resource_type=resource_type,
                resource_id=str(resource_id),
                error=str(exc),
            )
            return False

        logger.debug(f"Audit recorded: {action} {resource_type} {resource_id}")
        return True

    def schedule(
        self,
        background_tasks: BackgroundTasks,
        actor_id: uuid.UUID,
        tenant_id: uuid.UUID,
        action: str,
        resource_type: str,
        resource_id: Any,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue the write to run after the response has been sent"""
        background_tasks.add_task(
            self.record, actor_id, tenant_id, action, resource_type, resource_id, detail
        )


_recorder = AuditRecorder()


def get_audit_recorder() -> AuditRecorder:
    """Dependency to get the audit recorder"""
    return _recorder
