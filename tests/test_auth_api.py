"""
Integration tests for login, registration and token refresh endpoints
"""

import pytest
import uuid

from sqlmodel import select

from jurisdesk.models.audit_log import AuditLog
from jurisdesk.models.principal import AccountTier, Principal

PASSWORD = "password123"


@pytest.mark.asyncio
async def test_login_returns_token_pair(client, db, make_tenant, make_principal, token_service):
    tenant = make_tenant()
    principal = make_principal(tenant, AccountTier.COMPOSITE)

    response = await client.post("/api/auth/login", json={"email": principal.email, "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["account_tier"] == "COMPOSITE"
    claims = token_service.verify(body["access_token"])
    assert claims.principal_id == principal.id
    assert claims.tenant_id == tenant.id

    logs = db.exec(select(AuditLog).where(AuditLog.action == "LOGIN")).all()
    assert len(logs) == 1
    assert logs[0].details["email"] == principal.email


@pytest.mark.asyncio
async def test_login_wrong_password(client, make_tenant, make_principal):
    principal = make_principal(make_tenant())

    response = await client.post("/api/auth/login", json={"email": principal.email, "password": "wrong-password"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_inactive_principal(client, make_tenant, make_principal):
    principal = make_principal(make_tenant(), is_active=False)

    response = await client.post("/api/auth/login", json={"email": principal.email, "password": PASSWORD})

    assert response.status_code == 401
    assert response.json()["kind"] == "PrincipalInactive"


@pytest.mark.asyncio
async def test_login_inactive_tenant(client, make_tenant, make_principal):
    principal = make_principal(make_tenant(is_active=False))

    response = await client.post("/api/auth/login", json={"email": principal.email, "password": PASSWORD})

    assert response.status_code == 403
    assert response.json()["kind"] == "TenantInactive"


@pytest.mark.asyncio
async def test_refresh_endpoint(client, make_tenant, make_principal, token_service):
    tenant = make_tenant()
    principal = make_principal(tenant)
    pair = token_service.issue(principal.id, tenant.id, principal.account_tier)

    response = await client.post("/api/auth/refresh", json={"refresh_token": pair.refresh_token})

    assert response.status_code == 200
    assert token_service.verify(response.json()["access_token"]).principal_id == principal.id


@pytest.mark.asyncio
async def test_refresh_endpoint_rejects_access_token(client, make_tenant, make_principal, token_service):
    tenant = make_tenant()
    principal = make_principal(tenant)
    pair = token_service.issue(principal.id, tenant.id, principal.account_tier)

    response = await client.post("/api/auth/refresh", json={"refresh_token": pair.access_token})

    assert response.status_code == 401
    assert response.json()["kind"] == "TokenTypeMismatch"


@pytest.mark.asyncio
async def test_me(client, make_tenant, make_principal, auth_headers):
    principal = make_principal(make_tenant())

    response = await client.get("/api/auth/me", headers=auth_headers(principal))

    assert response.status_code == 200
    assert response.json()["email"] == principal.email


@pytest.mark.asyncio
async def test_register_into_tenant(client, db, make_tenant):
    tenant = make_tenant()

    response = await client.post(
        "/api/auth/register",
        json={
            "tenant_id": str(tenant.id),
            "email": "new.lawyer@example.com",
            "password": PASSWORD,
            "name": "New Lawyer",
        },
    )

    assert response.status_code == 201
    assert response.json()["account_tier"] == "SIMPLE"
    stored = db.exec(select(Principal).where(Principal.email == "new.lawyer@example.com")).one()
    assert stored.password_hash != PASSWORD


@pytest.mark.asyncio
async def test_register_duplicate_email(client, make_tenant, make_principal):
    tenant = make_tenant()
    existing = make_principal(tenant)

    response = await client.post(
        "/api/auth/register",
        json={"tenant_id": str(tenant.id), "email": existing.email, "password": PASSWORD, "name": "Copy"},
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_unknown_tenant(client, db):
    response = await client.post(
        "/api/auth/register",
        json={"tenant_id": str(uuid.uuid4()), "email": "x@example.com", "password": PASSWORD, "name": "Nobody"},
    )

    assert response.status_code == 403
    assert response.json()["kind"] == "TenantNotFound"
