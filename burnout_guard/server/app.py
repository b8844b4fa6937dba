"""
Burnout Guard Server - FastAPI Application

OAuth sign-in for new users, the manual run trigger, and a health endpoint.
The periodic scheduler runs inside the application lifespan.

Usage:
    uvicorn burnout_guard.server.app:create_app --factory --port 3000

    Or via the CLI:
    burnout-guard serve
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from dotenv import load_dotenv
from fastapi import FastAPI

from burnout_guard import __version__
from burnout_guard.automation.scheduler import ProtectionScheduler
from burnout_guard.config import BurnoutGuardConfig, DescopeCredentials, load_and_validate
from burnout_guard.protection.orchestrator import ProtectionOrchestrator
from burnout_guard.providers.descope import DescopeClient, DescopeTokenProvider
from burnout_guard.server.routes import agent_router, oauth_router
from burnout_guard.users.store import JsonFileUserStore, UserStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    state = app.state
    state.startup_time = datetime.now()

    # Startup
    missing = state.credentials.missing()
    if missing:
        logger.warning(f"Descope credentials not configured: {', '.join(missing)}")

    connected = len(state.user_store.load())
    port = state.config.server.port
    logger.info(f"Burnout Guard is running on http://localhost:{port}")
    logger.info(f"Connect your calendar: http://localhost:{port}/auth")
    logger.info(f"Manual test: http://localhost:{port}/run-now")
    logger.info(f"{connected} connected user(s) loaded")

    state.scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down Burnout Guard...")
    await state.scheduler.stop()


def create_app(
    config: BurnoutGuardConfig | None = None,
    *,
    credentials: DescopeCredentials | None = None,
    descope_client: DescopeClient | None = None,
    user_store: UserStore | None = None,
    orchestrator: ProtectionOrchestrator | None = None,
    scheduler: ProtectionScheduler | None = None,
) -> FastAPI:
    """
    Build the application.

    Any collaborator left as None is constructed from config and the
    environment (.env is loaded first).
    """
    load_dotenv()

    config = config or load_and_validate()
    credentials = credentials or DescopeCredentials.from_env()
    descope_client = descope_client or DescopeClient(credentials, config.descope)
    user_store = user_store or JsonFileUserStore(config.users.resolved_path())

    if orchestrator is None:
        token_provider = DescopeTokenProvider(descope_client)
        orchestrator = ProtectionOrchestrator.from_config(config, token_provider, user_store)
    scheduler = scheduler or ProtectionScheduler(orchestrator, config.scheduler)

    app = FastAPI(
        title="Burnout Guard",
        description="Calendar protection against overwork",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.credentials = credentials
    app.state.descope_client = descope_client
    app.state.user_store = user_store
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler
    app.state.startup_time = None

    app.include_router(oauth_router, tags=["oauth"])
    app.include_router(agent_router, tags=["agent"])

    return app
