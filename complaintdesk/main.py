"""
Complaint Desk - Main Application
=================================

Student complaint management with AI-assisted triage.

Modules:
- Accounts: registration, profiles and roles
- Complaints: submission, AI classification, admin review, change feed

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, validation and access policy
- Infrastructure: Database, LLM gateway, change feed, Slack alerts
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Configuration
from complaintdesk.config import settings

# Infrastructure
from complaintdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from complaintdesk.infrastructure.events import get_change_feed
from complaintdesk.infrastructure.notifications import get_operator_notifier

# Module Routers
from complaintdesk.accounts.interfaces import accounts_router
from complaintdesk.complaints.interfaces import complaints_admin_router, complaints_router
from complaintdesk.complaints.interfaces.dependencies import get_llm_client

# Shared
from complaintdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
)
from complaintdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Initialize LLM client

    SHUTDOWN:
    1. Close Slack client
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Complaint Desk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (development convenience; use migrations in production)
    logger.info("Creating database tables")
    try:
        await create_tables()
    except (OSError, SQLAlchemyError) as e:
        logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    logger.info("Initializing LLM client")
    if get_llm_client() is None:
        logger.warning("Complaint classification unavailable until LLM_API_KEY is set")

    app.state.settings = settings

    logger.info("Complaint Desk started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Complaint Desk")

    await get_operator_notifier().close()
    await close_database()

    logger.info("Complaint Desk shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Complaint Desk API",
    description="""
    ## Student Complaint Management

    Students file complaints; an AI classifier suggests category, priority and
    a draft reply; admins review and respond.

    ### Students
    - `POST /complaints` - Submit a complaint
    - `GET /complaints` - My complaints
    - `PATCH /complaints/{id}` - Edit while Pending
    - `POST /complaints/{id}/withdraw` - Withdraw while Pending

    ### Admins
    - `GET /admin/complaints` - All complaints with student details
    - `PATCH /admin/complaints/{id}` - Set status and response
    - `GET /admin/complaints/stats` - Counts by status

    ### Live updates
    - `GET /complaints/changes?after=<cursor>` - Poll
    - `WS /complaints/changes/ws?token=<jwt>` - Push
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware ===
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(accounts_router)
app.include_router(complaints_router)
app.include_router(complaints_admin_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "llm_client": "available",
                        "operator_alerts": "not_configured",
                        "change_feed": "0 subscribers"
                    }
                }
            }
        }
    }
})
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database connectivity, LLM availability, Slack alerting and
    live change feed subscribers.
    """
    checks = {
        "database": "connected",
        "llm_client": "available" if get_llm_client() is not None else "not_configured",
        "operator_alerts": "enabled" if get_operator_notifier().enabled else "not_configured",
        "change_feed": f"{get_change_feed().subscriber_count} subscribers"
    }

    try:
        async with get_session_context() as session:
            await session.execute(text("SELECT 1"))
    except (OSError, RuntimeError, SQLAlchemyError) as e:
        checks["database"] = f"error: {e}"

    healthy = checks["database"] == "connected"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Complaint Desk",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "accounts": {
                "prefix": "/accounts",
                "endpoints": [
                    "POST /accounts/register - Registration hook",
                    "GET /accounts/me - Current profile and roles",
                    "GET|PATCH /accounts/profiles/{user_id} - Profile"
                ]
            },
            "complaints": {
                "prefix": "/complaints",
                "endpoints": [
                    "POST /complaints/analyze - Classify without storing",
                    "POST /complaints - Submit",
                    "GET /complaints - My complaints",
                    "GET|PATCH /complaints/{id} - One complaint",
                    "POST /complaints/{id}/withdraw - Withdraw",
                    "GET /complaints/changes - Poll change feed",
                    "WS /complaints/changes/ws - Change feed stream"
                ]
            },
            "admin": {
                "prefix": "/admin/complaints",
                "endpoints": [
                    "GET /admin/complaints - All complaints",
                    "GET /admin/complaints/stats - Counts by status",
                    "PATCH /admin/complaints/{id} - Review"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "complaintdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
