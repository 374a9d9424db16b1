"""
Schemas for API responses and requests
"""

from jurisdesk.schemas.token import AccessTokenResponse, RefreshRequest, TokenClaims, TokenPair, TokenType
from jurisdesk.schemas.principal import (
    LoginRequest,
    LoginResponse,
    PrincipalCreate,
    PrincipalResponse,
    PrincipalUpdate,
    RegisterRequest,
)

__all__ = [
    "AccessTokenResponse",
    "RefreshRequest",
    "TokenClaims",
    "TokenPair",
    "TokenType",
    "LoginRequest",
    "LoginResponse",
    "PrincipalCreate",
    "PrincipalResponse",
    "PrincipalUpdate",
    "RegisterRequest",
]
