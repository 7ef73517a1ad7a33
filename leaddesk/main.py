"""
LeadDesk Backend - FastAPI Application
Main entry point with all routes configured.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from leaddesk.config import settings
from leaddesk.database import init_db, async_session_factory
from leaddesk.services.auth_service import AuthService
from leaddesk.services.email_poller import get_email_poller
from leaddesk.services.integrations.email import get_mail_provider
from leaddesk.schemas.common import HealthResponse

# Import all API routers
from leaddesk.api import auth, users, leads, companies, emails, notifications, inventory

# Import models to ensure they are registered with SQLModel
from leaddesk.models import (
    User, Company, Lead, EmailMessage, Notification, InventoryItem
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_db()
    async with async_session_factory() as session:
        await AuthService(session).ensure_admin()

    poller = get_email_poller()
    if settings.EMAIL_POLL_ENABLED:
        poller.start()
    else:
        logger.info("Email polling disabled")

    yield

    # Shutdown
    poller.stop()


app = FastAPI(
    title="LeadDesk API",
    description="Sales CRM with inbound email threading",
    version=VERSION,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL] if not settings.DEV_MODE else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(leads.router)
app.include_router(companies.router)
app.include_router(emails.router)
app.include_router(emails.grammar_router)
app.include_router(notifications.router)
app.include_router(inventory.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "LeadDesk API is running",
        "version": VERSION,
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Detailed health check."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        mail_provider=get_mail_provider().name
    )
