"""
Integration tests for the request pipeline and tenant isolation

Every request runs token verification, tenant validation and the capability
gate in that order; a rejection at any stage stops the request.
"""

import pytest
from contextlib import contextmanager
from datetime import timedelta

from sqlmodel import select

from jurisdesk.core.capabilities import MB
from jurisdesk.core.clock import utcnow
from jurisdesk.models.audit_log import AuditLog
from jurisdesk.models.principal import AccountTier
from jurisdesk.models.resources import Client, Project, StoredFile
from jurisdesk.main import app
from jurisdesk.services.audit import AuditRecorder, get_audit_recorder


class BrokenStore:
    def append_audit(self, entry):
        raise RuntimeError("audit table unavailable")


@contextmanager
def broken_store_scope():
    yield BrokenStore()


# ==================== SCENARIOS ====================

@pytest.mark.asyncio
async def test_simple_tier_denied_cash_flow(client, make_tenant, make_principal, auth_headers):
    """SIMPLE principal asking for a COMPOSITE module gets upgrade suggestions"""
    tenant = make_tenant()
    principal = make_principal(tenant, AccountTier.SIMPLE)

    response = await client.get("/api/tenant/transactions", headers=auth_headers(principal))

    assert response.status_code == 403
    body = response.json()
    assert body["status"] == "error"
    assert body["kind"] == "CapabilityDenied"
    assert body["code"] == "ACCOUNT_ACCESS_DENIED"
    assert body["currentAccount"] == "SIMPLE"
    assert body["requiredModule"] == "cash_flow"
    assert body["suggestedAccounts"] == ["COMPOSITE", "MANAGERIAL"]


@pytest.mark.asyncio
async def test_expired_tenant_denied(client, make_tenant, make_principal, auth_headers):
    tenant = make_tenant(expires_at=utcnow() - timedelta(days=1))
    principal = make_principal(tenant, AccountTier.MANAGERIAL)

    response = await client.get("/api/tenant/clients", headers=auth_headers(principal))

    assert response.status_code == 403
    assert response.json()["kind"] == "TenantExpired"


@pytest.mark.asyncio
async def test_account_seat_limit(client, make_tenant, make_principal, auth_headers):
    tenant = make_tenant(max_simple_accounts=2)
    manager = make_principal(tenant, AccountTier.MANAGERIAL)
    make_principal(tenant, AccountTier.SIMPLE)
    make_principal(tenant, AccountTier.SIMPLE)

    response = await client.post(
        "/api/tenant/users",
        headers=auth_headers(manager),
        json={
            "email": "third@example.com",
            "password": "password123",
            "name": "Third Lawyer",
            "account_tier": "SIMPLE",
        },
    )

    assert response.status_code == 403
    body = response.json()
    assert body["kind"] == "QuotaExceeded"
    assert body["code"] == "ACCOUNT_LIMIT_EXCEEDED"
    assert body["resourceType"] == "accounts"
    assert body["currentCount"] == 2
    assert body["maxAllowed"] == 2


# ==================== TOKEN STAGE ====================

@pytest.mark.asyncio
async def test_missing_bearer_token(client, db):
    response = await client.get("/api/tenant/clients")

    assert response.status_code == 401
    assert response.json()["kind"] == "TokenInvalid"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_refresh_token_used_as_bearer(client, token_service, make_tenant, make_principal):
    tenant = make_tenant()
    principal = make_principal(tenant, AccountTier.MANAGERIAL)
    pair = token_service.issue(principal.id, tenant.id, principal.account_tier)

    response = await client.get(
        "/api/tenant/clients",
        headers={"Authorization": f"Bearer {pair.refresh_token}"},
    )

    assert response.status_code == 401
    body = response.json()
    assert body["kind"] == "TokenTypeMismatch"
    assert body["receivedType"] == "refresh"


@pytest.mark.asyncio
async def test_expired_access_token(client, token_service, make_tenant, make_principal):
    tenant = make_tenant()
    principal = make_principal(tenant)
    pair = token_service.issue(principal.id, tenant.id, principal.account_tier, now=utcnow() - timedelta(days=2))

    response = await client.get("/api/tenant/clients", headers={"Authorization": f"Bearer {pair.access_token}"})

    assert response.status_code == 401
    assert response.json()["kind"] == "TokenExpired"


# ==================== TENANT STAGE ====================

@pytest.mark.asyncio
async def test_tenant_deactivated_after_token_issued(client, db, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    principal = make_principal(tenant)
    headers = auth_headers(principal)

    assert (await client.get("/api/tenant/clients", headers=headers)).status_code == 200

    tenant.is_active = False
    db.add(tenant)
    db.commit()

    response = await client.get("/api/tenant/clients", headers=headers)
    assert response.status_code == 403
    assert response.json()["kind"] == "TenantInactive"


@pytest.mark.asyncio
async def test_tenant_checked_before_capability(client, make_tenant, make_principal, auth_headers):
    tenant = make_tenant(is_active=False)
    principal = make_principal(tenant, AccountTier.SIMPLE)

    response = await client.get("/api/tenant/audit-logs", headers=auth_headers(principal))

    assert response.json()["kind"] == "TenantInactive"


# ==================== ISOLATION ====================

@pytest.mark.asyncio
async def test_clients_are_listed_per_tenant(client, db, make_tenant, make_principal, auth_headers):
    tenant_a = make_tenant()
    tenant_b = make_tenant()
    principal_a = make_principal(tenant_a)
    db.add(Client(tenant_id=tenant_a.id, name="Client of A"))
    db.add(Client(tenant_id=tenant_b.id, name="Client of B"))
    db.commit()

    response = await client.get("/api/tenant/clients", headers=auth_headers(principal_a))

    assert response.status_code == 200
    assert [c["name"] for c in response.json()] == ["Client of A"]


@pytest.mark.asyncio
async def test_cross_tenant_delete_is_not_found(client, db, make_tenant, make_principal, auth_headers):
    tenant_a = make_tenant()
    tenant_b = make_tenant()
    principal_a = make_principal(tenant_a)
    foreign = Client(tenant_id=tenant_b.id, name="Client of B")
    db.add(foreign)
    db.commit()
    db.refresh(foreign)

    response = await client.delete(f"/api/tenant/clients/{foreign.id}", headers=auth_headers(principal_a))

    assert response.status_code == 404
    db.expire_all()
    assert db.get(Client, foreign.id) is not None


@pytest.mark.asyncio
async def test_project_for_foreign_client_is_rejected(client, db, make_tenant, make_principal, auth_headers):
    tenant_a = make_tenant()
    tenant_b = make_tenant()
    principal_a = make_principal(tenant_a)
    foreign = Client(tenant_id=tenant_b.id, name="Client of B")
    db.add(foreign)
    db.commit()
    db.refresh(foreign)

    response = await client.post(
        "/api/tenant/projects",
        headers=auth_headers(principal_a),
        json={"title": "Lawsuit", "client_id": str(foreign.id)},
    )

    assert response.status_code == 404
    assert db.exec(select(Project)).all() == []


# ==================== HANDLERS & AUDIT ====================

@pytest.mark.asyncio
async def test_create_client_writes_audit(client, db, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    principal = make_principal(tenant)

    response = await client.post(
        "/api/tenant/clients",
        headers=auth_headers(principal),
        json={"name": "Acme Ltda", "email": "contact@acme.com.br"},
    )

    assert response.status_code == 201
    assert response.json()["tenant_id"] == str(tenant.id)

    logs = db.exec(select(AuditLog).where(AuditLog.tenant_id == tenant.id)).all()
    assert [(log.action, log.resource_type) for log in logs] == [("CREATE", "CLIENT")]
    assert logs[0].user_id == principal.id


@pytest.mark.asyncio
async def test_audit_failure_does_not_change_response(client, db, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    principal = make_principal(tenant)
    payload = {"name": "Acme Ltda", "email": "contact@acme.com.br"}

    healthy = await client.post("/api/tenant/clients", headers=auth_headers(principal), json=payload)

    app.dependency_overrides[get_audit_recorder] = lambda: AuditRecorder(store_factory=broken_store_scope)
    broken = await client.post("/api/tenant/clients", headers=auth_headers(principal), json=payload)

    assert broken.status_code == healthy.status_code == 201

    def comparable(body):
        return {key: value for key, value in body.items() if key not in ("id", "created_at")}

    assert comparable(broken.json()) == comparable(healthy.json())
    assert len(db.exec(select(Client)).all()) == 2
    # Only the healthy run left an audit row
    assert len(db.exec(select(AuditLog)).all()) == 1


@pytest.mark.asyncio
async def test_client_quota_suggests_upgrade(client, db, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    principal = make_principal(tenant, AccountTier.SIMPLE)
    for i in range(50):
        db.add(Client(tenant_id=tenant.id, name=f"Client {i}"))
    db.commit()

    response = await client.post(
        "/api/tenant/clients",
        headers=auth_headers(principal),
        json={"name": "One Too Many"},
    )

    assert response.status_code == 403
    body = response.json()
    assert body["kind"] == "QuotaExceeded"
    assert body["currentCount"] == 50
    assert body["maxAllowed"] == 50
    assert body["suggestedAccounts"] == ["COMPOSITE", "MANAGERIAL"]


@pytest.mark.asyncio
async def test_dashboard_hides_financials_for_simple(client, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    simple = make_principal(tenant, AccountTier.SIMPLE)
    composite = make_principal(tenant, AccountTier.COMPOSITE)

    simple_view = (await client.get("/api/tenant/dashboard", headers=auth_headers(simple))).json()
    composite_view = (await client.get("/api/tenant/dashboard", headers=auth_headers(composite))).json()

    assert simple_view["has_financial_access"] is False
    assert composite_view["has_financial_access"] is True


@pytest.mark.asyncio
async def test_audit_logs_are_tenant_scoped(client, db, make_tenant, make_principal, auth_headers):
    tenant_a = make_tenant()
    tenant_b = make_tenant()
    manager_a = make_principal(tenant_a, AccountTier.MANAGERIAL)
    user_b = make_principal(tenant_b)
    db.add(AuditLog(tenant_id=tenant_a.id, user_id=manager_a.id, action="CREATE", resource_type="CLIENT", resource_id="1"))
    db.add(AuditLog(tenant_id=tenant_b.id, user_id=user_b.id, action="CREATE", resource_type="CLIENT", resource_id="2"))
    db.commit()

    response = await client.get("/api/tenant/audit-logs", headers=auth_headers(manager_a))

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 1
    assert body["logs"][0]["tenant_id"] == str(tenant_a.id)


# ==================== FILES ====================

@pytest.mark.asyncio
async def test_storage_quota_blocks_upload(client, db, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    principal = make_principal(tenant, AccountTier.SIMPLE)
    db.add(StoredFile(
        tenant_id=tenant.id,
        uploaded_by=principal.id,
        filename="case-archive.zip",
        mimetype="application/zip",
        size=100 * MB,
    ))
    db.commit()

    response = await client.post(
        "/api/tenant/files",
        headers=auth_headers(principal),
        json={"filename": "petition.pdf", "mimetype": "application/pdf", "size": 1024},
    )

    assert response.status_code == 403
    body = response.json()
    assert body["kind"] == "QuotaExceeded"
    assert body["resourceType"] == "storage"
    assert body["currentCount"] == 100 * MB
    assert body["maxAllowed"] == 100 * MB
    assert body["suggestedAccounts"] == ["COMPOSITE", "MANAGERIAL"]
    assert len(db.exec(select(StoredFile)).all()) == 1


@pytest.mark.asyncio
async def test_register_file_below_storage_limit(client, db, make_tenant, make_principal, auth_headers):
    tenant = make_tenant()
    principal = make_principal(tenant, AccountTier.SIMPLE)

    response = await client.post(
        "/api/tenant/files",
        headers=auth_headers(principal),
        json={"filename": "petition.pdf", "mimetype": "application/pdf", "size": 2048},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["tenant_id"] == str(tenant.id)
    assert body["uploaded_by"] == str(principal.id)

    logs = db.exec(select(AuditLog).where(AuditLog.tenant_id == tenant.id)).all()
    assert [(log.action, log.resource_type) for log in logs] == [("CREATE", "FILE")]
    assert logs[0].resource_id == body["id"]
    assert logs[0].details == {"filename": "petition.pdf", "size": 2048}
