"""
User authentication API endpoints
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
import structlog

from jurisdesk.core.auth import TokenService, get_token_service
from jurisdesk.core.clock import utcnow
from jurisdesk.core.dependencies import RequestContext, get_credential_store, get_request_context
from jurisdesk.core.errors import PrincipalInactive
from jurisdesk.core.passwords import verify_password
from jurisdesk.core.tenancy import validate_tenant
from jurisdesk.schemas.principal import LoginRequest, LoginResponse, PrincipalResponse, RegisterRequest
from jurisdesk.schemas.token import AccessTokenResponse, RefreshRequest
from jurisdesk.services.audit import AuditRecorder, get_audit_recorder
from jurisdesk.services.credential_store import SQLCredentialStore
from jurisdesk.services.principals import create_principal

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login_user(
    login_data: LoginRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    store: SQLCredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Login user and issue an access/refresh token pair"""
    user = store.get_principal_by_email(login_data.email)
    if not user or not verify_password(login_data.password, user.password_hash):
        logger.info("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.is_active:
        raise PrincipalInactive("User account is inactive")

    validate_tenant(store, user.tenant_id)

    # Update last login
    user.last_login_at = utcnow()
    user = store.save(user)

    pair = tokens.issue(user.id, user.tenant_id, user.account_tier)
    audit.schedule(
        background_tasks,
        user.id,
        user.tenant_id,
        "LOGIN",
        "USER",
        user.id,
        {"email": user.email, "ip": request.client.host if request.client else None},
    )

    logger.info(f"User logged in: {user.id}")
    return LoginResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=PrincipalResponse.model_validate(user, from_attributes=True),
    )


@router.post("/register", response_model=PrincipalResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: RegisterRequest,
    background_tasks: BackgroundTasks,
    store: SQLCredentialStore = Depends(get_credential_store),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Register a new user in an existing tenant"""
    tenant = validate_tenant(store, user_data.tenant_id)
    user = create_principal(store, tenant, user_data)

    audit.schedule(
        background_tasks,
        user.id,
        tenant.id,
        "REGISTER",
        "USER",
        user.id,
        {"email": user.email, "accountTier": user.account_tier.value},
    )
    return PrincipalResponse.model_validate(user, from_attributes=True)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    body: RefreshRequest,
    store: SQLCredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Exchange a refresh token for a new access token"""
    access_token = tokens.refresh(body.refresh_token, store)
    return AccessTokenResponse(access_token=access_token)


@router.post("/logout")
async def logout_user():
    """Tokens are stateless; the client discards them"""
    return {"message": "Logged out"}


@router.get("/me", response_model=PrincipalResponse)
async def get_current_user_info(
    context: RequestContext = Depends(get_request_context),
    store: SQLCredentialStore = Depends(get_credential_store),
):
    """Get current user info"""
    user = store.get_principal(context.principal_id)
    if not user or user.tenant_id != context.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return PrincipalResponse.model_validate(user, from_attributes=True)
