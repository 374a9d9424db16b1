"""
Access-control error taxonomy

Every denial raised by the request pipeline is an ``AccessDenied`` subclass.
Each class fixes its ``kind`` (stable name for logs and tests), ``code``
(machine-readable string for clients) and HTTP status. ``detail`` carries the
structured payload a client needs to render an actionable message.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger(__name__)


class AccessDenied(Exception):
    """Base class for terminal authentication/authorization failures"""

    kind = "AccessDenied"
    code = "ACCESS_DENIED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"

    def __init__(self, message: Optional[str] = None, **detail: Any):
        self.message = message or self.default_message
        self.detail: Dict[str, Any] = detail
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": "error",
            "kind": self.kind,
            "code": self.code,
            "message": self.message,
            **self.detail,
        }


# Authentication (401)

class TokenInvalid(AccessDenied):
    kind = "TokenInvalid"
    code = "TOKEN_INVALID"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"


class TokenTypeMismatch(TokenInvalid):
    """Refresh token used as access token, or the reverse"""
    kind = "TokenTypeMismatch"
    code = "TOKEN_TYPE_MISMATCH"
    default_message = "Wrong token type"


class TokenExpired(AccessDenied):
    kind = "TokenExpired"
    code = "TOKEN_EXPIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Token expired"


class PrincipalInactive(AccessDenied):
    kind = "PrincipalInactive"
    code = "PRINCIPAL_INACTIVE"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not found or inactive"


# Tenant state (403)

class TenantNotFound(AccessDenied):
    kind = "TenantNotFound"
    code = "TENANT_NOT_FOUND"
    default_message = "Tenant not found"


class TenantInactive(AccessDenied):
    kind = "TenantInactive"
    code = "TENANT_INACTIVE"
    default_message = "Tenant is inactive"


class TenantExpired(AccessDenied):
    kind = "TenantExpired"
    code = "TENANT_EXPIRED"
    default_message = "Tenant subscription has expired"


# Plan gating (403)

class CapabilityDenied(AccessDenied):
    kind = "CapabilityDenied"
    code = "ACCOUNT_ACCESS_DENIED"
    default_message = "Account tier does not include this module"


class QuotaExceeded(AccessDenied):
    kind = "QuotaExceeded"
    code = "ACCOUNT_LIMIT_EXCEEDED"
    default_message = "Account limit reached"


class AdminAccessDenied(AccessDenied):
    kind = "AdminAccessDenied"
    code = "ADMIN_ACCESS_DENIED"
    default_message = "Administrative access not authorized"


class AuditWriteFailed(Exception):
    """Audit append failed; logged by the recorder, never sent to the client"""
    kind = "AuditWriteFailed"


async def access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    """Render an AccessDenied as its structured JSON payload"""
    logger.info(
        "access_denied",
        kind=exc.kind,
        path=request.url.path,
        status_code=exc.status_code,
    )
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)
