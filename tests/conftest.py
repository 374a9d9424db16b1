"""
Test configuration for pytest
"""

import pytest
import pytest_asyncio
import os
from datetime import datetime
from sqlmodel import SQLModel, Session
from typing import Callable, Dict, Generator, Optional

# Test environment variables, set before the application reads its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["ADMIN_KEY"] = "test-admin-key"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = "test-admin-password"
os.environ["BCRYPT_ROUNDS"] = "4"

from httpx import AsyncClient, ASGITransport  # noqa: E402

import jurisdesk.models  # noqa: E402,F401
from jurisdesk.core.auth import TokenService, get_token_service  # noqa: E402
from jurisdesk.core.database import engine  # noqa: E402
from jurisdesk.core.passwords import hash_password  # noqa: E402
from jurisdesk.main import app  # noqa: E402
from jurisdesk.models.principal import AccountTier, Principal  # noqa: E402
from jurisdesk.models.tenant import PlanType, Tenant  # noqa: E402

ADMIN_KEY = "test-admin-key"
PASSWORD = "password123"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    # Create all tables
    SQLModel.metadata.create_all(engine)

    # Create session
    with Session(engine) as session:
        yield session

    # Cleanup
    app.dependency_overrides.clear()
    SQLModel.metadata.drop_all(engine)


@pytest_asyncio.fixture
async def client(db: Session):
    """HTTP client bound to the ASGI app (background tasks finish before it returns)"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def token_service() -> TokenService:
    return get_token_service()


@pytest.fixture
def make_tenant(db: Session) -> Callable[..., Tenant]:
    """Factory for tenants; defaults to an active, non-expiring tenant"""
    counter = {"n": 0}

    def _make(
        company_name: Optional[str] = None,
        is_active: bool = True,
        expires_at: Optional[datetime] = None,
        **capacities,
    ) -> Tenant:
        counter["n"] += 1
        tenant = Tenant(
            company_name=company_name or f"Law Firm {counter['n']}",
            plan_type=PlanType.MANAGERIAL,
            is_active=is_active,
            expires_at=expires_at,
            max_simple_accounts=capacities.get("max_simple_accounts", 5),
            max_composite_accounts=capacities.get("max_composite_accounts", 5),
            max_managerial_accounts=capacities.get("max_managerial_accounts", 5),
        )
        db.add(tenant)
        db.commit()
        db.refresh(tenant)
        return tenant

    return _make


@pytest.fixture
def make_principal(db: Session) -> Callable[..., Principal]:
    """Factory for principals with the shared test password"""
    counter = {"n": 0}

    def _make(tenant: Tenant, tier: AccountTier = AccountTier.SIMPLE, is_active: bool = True) -> Principal:
        counter["n"] += 1
        principal = Principal(
            tenant_id=tenant.id,
            email=f"lawyer{counter['n']}@example.com",
            password_hash=hash_password(PASSWORD),
            name=f"Lawyer {counter['n']}",
            account_tier=tier,
            is_active=is_active,
        )
        db.add(principal)
        db.commit()
        db.refresh(principal)
        return principal

    return _make


@pytest.fixture
def auth_headers(token_service: TokenService) -> Callable[[Principal], Dict[str, str]]:
    """Bearer header carrying a fresh access token for the principal"""
    def _headers(principal: Principal) -> Dict[str, str]:
        pair = token_service.issue(principal.id, principal.tenant_id, principal.account_tier)
        return {"Authorization": f"Bearer {pair.access_token}"}

    return _headers


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-Admin-Key": ADMIN_KEY}
