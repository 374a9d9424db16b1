"""
JurisDesk - Main Application Entry Point
Multi-tenant legal practice management backend
"""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import structlog

from jurisdesk.core.config import get_settings
from jurisdesk.core.dependencies import require_admin_key
from jurisdesk.core.errors import AccessDenied, access_denied_handler
from jurisdesk.api import admin, auth, tenant

settings = get_settings()

logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Initializing JurisDesk backend")
    # Tables are created by Alembic migrations, not auto-generated
    logger.info("Database managed by Alembic migrations")
    if not settings.ADMIN_KEY:
        logger.warning("ADMIN_KEY is not set; admin API will reject every request")

    yield

    # Shutdown
    logger.info("Shutting down JurisDesk backend")


# Create FastAPI application
app = FastAPI(
    title="JurisDesk API",
    description="Multi-tenant legal practice management with plan-gated access control",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure middleware stack
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.add_exception_handler(AccessDenied, access_denied_handler)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(tenant.router, prefix="/api/tenant", tags=["tenant"])
app.include_router(admin.public_router, prefix="/api/admin", tags=["admin"])
app.include_router(
    admin.router,
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_key)],
)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "jurisdesk-api"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "JurisDesk API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "jurisdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
