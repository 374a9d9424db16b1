"""
Request pipeline as FastAPI dependencies

Protected requests run, in order: token verification, tenant validation,
capability gate. Each stage raises an AccessDenied subclass on failure, which
stops the pipeline. Quota checks and audit writes happen inside handlers.

The admin route tree uses a separate, single-stage pipeline: a constant-time
comparison of the X-Admin-Key header with the configured shared secret.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
import hmac
import uuid

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session
import structlog

from jurisdesk.core.auth import TokenService, get_token_service
from jurisdesk.core.capabilities import Capability, ensure_capability
from jurisdesk.core.config import get_settings
from jurisdesk.core.database import get_session
from jurisdesk.core.errors import AdminAccessDenied, TokenInvalid
from jurisdesk.core.tenancy import TenantState, validate_tenant
from jurisdesk.models.principal import AccountTier
from jurisdesk.schemas.token import TokenClaims, TokenType
from jurisdesk.services.credential_store import SQLCredentialStore

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Authenticated principal plus its validated tenant"""
    claims: TokenClaims
    tenant: TenantState

    @property
    def principal_id(self) -> uuid.UUID:
        return self.claims.principal_id

    @property
    def tenant_id(self) -> uuid.UUID:
        return self.claims.tenant_id

    @property
    def account_tier(self) -> AccountTier:
        return self.claims.account_tier


def get_credential_store(session: Session = Depends(get_session)) -> SQLCredentialStore:
    """Dependency to get the credential store for this request"""
    return SQLCredentialStore(session)


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """Stage 1: verify the bearer access token"""
    if credentials is None:
        raise TokenInvalid("Authentication token not provided")
    claims = tokens.verify(credentials.credentials, TokenType.ACCESS)
    logger.debug(f"User authenticated: {claims.principal_id}")
    return claims


def get_request_context(
    claims: TokenClaims = Depends(get_token_claims),
    store: SQLCredentialStore = Depends(get_credential_store),
) -> RequestContext:
    """Stage 2: re-validate the tenant named in the claims"""
    tenant = validate_tenant(store, claims.tenant_id)
    return RequestContext(claims=claims, tenant=tenant)


def require_capability(capability: Capability):
    """Dependency factory for stage 3: the capability implied by the route"""
    async def check_capability(context: RequestContext = Depends(get_request_context)) -> RequestContext:
        ensure_capability(context.account_tier, capability)
        return context
    return check_capability


def secrets_match(presented: Optional[str], expected: str) -> bool:
    """Constant-time comparison; an empty expected value never matches"""
    if not expected or not presented:
        return False
    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


class AdminKeyGuard:
    """Holds the admin shared secret, fixed at process start"""

    def __init__(self, secret: str):
        self._secret = secret

    def verify(self, presented: Optional[str]) -> None:
        # An unset secret disables the admin API entirely
        if not self._secret or not presented:
            raise AdminAccessDenied()
        if not secrets_match(presented, self._secret):
            logger.warning("admin_key_rejected")
            raise AdminAccessDenied()


@lru_cache()
def get_admin_guard() -> AdminKeyGuard:
    return AdminKeyGuard(get_settings().ADMIN_KEY)


async def require_admin_key(
    x_admin_key: Optional[str] = Header(default=None, alias="X-Admin-Key"),
    guard: AdminKeyGuard = Depends(get_admin_guard),
) -> None:
    """Gate for the whole admin route tree"""
    guard.verify(x_admin_key)
