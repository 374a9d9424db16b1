"""
JWT token service: issue, verify and refresh session tokens

Tokens are stateless. There is no server-side revocation list, so an issued
access token stays valid until it expires; the short access TTL bounds that
window. Logout is a client-side discard.
"""

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Dict, Optional
import uuid

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError
import structlog

from jurisdesk.core.clock import utcnow
from jurisdesk.core.config import get_settings
from jurisdesk.core.errors import PrincipalInactive, TokenExpired, TokenInvalid, TokenTypeMismatch
from jurisdesk.core.tenancy import validate_tenant
from jurisdesk.models.principal import AccountTier
from jurisdesk.schemas.token import TokenClaims, TokenPair, TokenType
from jurisdesk.services.credential_store import CredentialStore

logger = structlog.get_logger(__name__)


class TokenService:
    """Signs and verifies access, refresh and admin tokens"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=24),
        refresh_ttl: timedelta = timedelta(days=30),
        admin_ttl: timedelta = timedelta(hours=8),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.admin_ttl = admin_ttl

    def _encode(self, claims: Dict[str, Any]) -> str:
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def _principal_token(
        self,
        principal_id: uuid.UUID,
        tenant_id: uuid.UUID,
        tier: AccountTier,
        token_type: TokenType,
        issued_at: datetime,
        ttl: timedelta,
    ) -> str:
        return self._encode({
            "sub": str(principal_id),
            "tenant_id": str(tenant_id),
            "account_tier": AccountTier(tier).value,
            "type": token_type.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
        })

    def issue(
        self,
        principal_id: uuid.UUID,
        tenant_id: uuid.UUID,
        tier: AccountTier,
        now: Optional[datetime] = None,
    ) -> TokenPair:
        """Create an access/refresh pair for a principal"""
        issued_at = now or utcnow()
        return TokenPair(
            access_token=self._principal_token(
                principal_id, tenant_id, tier, TokenType.ACCESS, issued_at, self.access_ttl
            ),
            refresh_token=self._principal_token(
                principal_id, tenant_id, tier, TokenType.REFRESH, issued_at, self.refresh_ttl
            ),
        )

    def issue_access(
        self,
        principal_id: uuid.UUID,
        tenant_id: uuid.UUID,
        tier: AccountTier,
        now: Optional[datetime] = None,
    ) -> str:
        return self._principal_token(
            principal_id, tenant_id, tier, TokenType.ACCESS, now or utcnow(), self.access_ttl
        )

    def issue_admin(self, email: str, now: Optional[datetime] = None) -> str:
        """Token for the admin console; never accepted by tenant routes"""
        issued_at = now or utcnow()
        return self._encode({
            "sub": email,
            "type": TokenType.ADMIN.value,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.admin_ttl).timestamp()),
        })

    def verify(self, token: str, expected_type: TokenType = TokenType.ACCESS) -> TokenClaims:
        """Validate signature, expiry and token type, then parse the claims"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError:
            raise TokenInvalid()

        received = payload.get("type")
        if received != expected_type.value:
            if received in {t.value for t in TokenType}:
                raise TokenTypeMismatch(expectedType=expected_type.value, receivedType=received)
            raise TokenInvalid("Token type claim missing or unknown")

        try:
            return TokenClaims(
                principal_id=payload["sub"],
                tenant_id=payload["tenant_id"],
                account_tier=payload["account_tier"],
                token_type=received,
                issued_at=payload["iat"],
                expires_at=payload["exp"],
            )
        except (KeyError, ValidationError):
            raise TokenInvalid("Malformed token claims")

    def refresh(self, refresh_token: str, store: CredentialStore, now: Optional[datetime] = None) -> str:
        """Mint a new access token if the principal and tenant are still live

        The new token carries the principal's current tier, so administrative
        tier changes take effect here.
        """
        claims = self.verify(refresh_token, TokenType.REFRESH)

        principal = store.get_principal(claims.principal_id)
        if principal is None or not principal.is_active:
            logger.info("refresh_rejected_principal_inactive", principal_id=str(claims.principal_id))
            raise PrincipalInactive()
        if principal.tenant_id != claims.tenant_id:
            raise TokenInvalid("Token tenant does not match principal")

        validate_tenant(store, principal.tenant_id, now=now)

        logger.info(f"Access token refreshed for user {principal.id}")
        return self.issue_access(principal.id, principal.tenant_id, principal.account_tier, now=now)


@lru_cache()
def get_token_service() -> TokenService:
    """Process-wide token service built from settings"""
    settings = get_settings()
    return TokenService(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        access_ttl=timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
        admin_ttl=timedelta(minutes=settings.ADMIN_TOKEN_EXPIRE_MINUTES),
    )
