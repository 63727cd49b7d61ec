"""
Helpdesk Assistant - Main Application
======================================

Automated triage engine for customer support tickets.

Modules:
- Triage: analyze, route, answer from the knowledge base, reply
- Follow-up: remind, warn and auto-close tickets waiting on the customer

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, lexicon and scoring rules
- Infrastructure: Database, email, config watcher, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from helpdesk.config import settings
from helpdesk.core import ResourceNotFoundException

# Infrastructure
from helpdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)

# Triage Module - External services
from helpdesk.triage.infrastructure import (
    AssistantConfigManager,
    BackgroundTicketProcessor,
    EmailNotificationClient,
    GrafanaAssistantMetrics,
    build_assistant_service,
)

# Follow-up Module
from helpdesk.followup.infrastructure import FollowupScheduler, build_followup_service

# Module Routers
from helpdesk.triage.interfaces import assistant_router
from helpdesk.followup.interfaces import followup_router

# Logging and metrics
from helpdesk.shared.infrastructure.logging import setup_logging, get_logger, log_latency
from helpdesk.shared.infrastructure.grafana import get_grafana_exporter
from helpdesk.shared.api.middleware import (
    RequestContextMiddleware,
    global_exception_handler,
    not_found_exception_handler,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load assistant configuration and watch the file
    4. Initialize email and metrics adapters
    5. Start the background ticket processor
    6. Start the follow-up scheduler

    SHUTDOWN:
    1. Stop the follow-up scheduler
    2. Drain in-flight ticket processing
    3. Stop config watcher, close email client and database
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk Assistant", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Development convenience; if the database is down the service still
    # starts and database-backed endpoints fail individually
    try:
        await create_tables()
    except Exception as e:
        logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    logger.info("Loading assistant configuration")
    config_manager = AssistantConfigManager()
    config_manager.load(settings.assistant_config_path)
    config_manager.start_watching()

    notifier = EmailNotificationClient()

    metrics = GrafanaAssistantMetrics(get_grafana_exporter())

    ticket_processor = BackgroundTicketProcessor(
        lambda session: build_assistant_service(session, config_manager, notifier, metrics)
    )

    async def followup_job() -> None:
        """Background follow-up sweep."""
        with log_latency(logger, "followup_sweep"):
            async with get_session_context() as session:
                service = build_followup_service(session, config_manager, notifier, metrics)
                await service.process_auto_followup()

    followup_scheduler = None
    if settings.followup_sweep_interval > 0:
        try:
            followup_scheduler = FollowupScheduler(interval_seconds=settings.followup_sweep_interval)
            await followup_scheduler.start(followup_job)
        except Exception as e:
            logger.warning("Follow-up scheduler not started", extra={"error": str(e)})
            followup_scheduler = None
    else:
        logger.info("Follow-up scheduler disabled")

    # Store services in app state for dependency injection
    app.state.config_manager = config_manager
    app.state.notifier = notifier
    app.state.metrics = metrics
    app.state.ticket_processor = ticket_processor
    app.state.followup_scheduler = followup_scheduler

    logger.info("Helpdesk Assistant started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk Assistant")

    if followup_scheduler:
        await followup_scheduler.stop()

    await ticket_processor.drain()
    config_manager.stop_watching()
    await notifier.close()
    await close_database()

    logger.info("Helpdesk Assistant shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk Assistant API",
    description="""
    ## Automated Triage Engine for Customer Support

    ### Assistant

    - `POST /assistant/analyze` - Language, sentiment, priority and category of a ticket
    - `POST /assistant/tickets/{id}/process` - Run the full pipeline in the background
    - `POST /assistant/tickets/{id}/assign` - Auto-assign to the best available agent
    - `POST /assistant/kb/search` - Relevant knowledge-base articles
    - `GET /assistant/config` - Current assistant configuration

    ### Follow-up

    - `POST /followup/run` - Remind, warn or auto-close waiting tickets

    Replies are written in Spanish or English, following the ticket's language.
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

# === Request context, timing and error mapping ===
app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(ResourceNotFoundException, not_found_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(assistant_router)
app.include_router(followup_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports configuration, scheduler and background processor state.
    """
    state = request.app.state
    config_manager = getattr(state, "config_manager", None)
    scheduler = getattr(state, "followup_scheduler", None)
    processor = getattr(state, "ticket_processor", None)

    checks = {
        "assistant_config": "loaded" if config_manager else "not_loaded",
        "assistant_enabled": bool(config_manager and config_manager.get_config().enabled),
        "config_watcher": "watching" if getattr(config_manager, "is_watching", False) else "static",
        "followup_scheduler": "running" if scheduler and scheduler.is_running else "stopped",
        "pending_tickets": processor.pending if processor else 0,
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk Assistant",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "assistant": {
                "prefix": "/assistant",
                "endpoints": [
                    "POST /assistant/analyze - Analyze ticket text",
                    "POST /assistant/tickets/{id}/process - Run assistant pipeline",
                    "POST /assistant/tickets/{id}/assign - Auto-assign ticket",
                    "POST /assistant/kb/search - Search knowledge base",
                    "GET /assistant/config - Assistant configuration"
                ]
            },
            "followup": {
                "prefix": "/followup",
                "endpoints": [
                    "POST /followup/run - Run follow-up sweep"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
