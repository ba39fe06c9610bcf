"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from jiramirror.api import accounts, auth, dashboard, data, sync
from jiramirror.config import Settings, settings as default_settings
from jiramirror.models.base import Store
from jiramirror.scheduler import SyncScheduler
from jiramirror.security import AuthStateRegistry
from jiramirror.services.orchestrator import SyncOrchestrator
from jiramirror.services.token_manager import TokenLifecycleManager

# Configure logging
logging.basicConfig(
    level=getattr(logging, default_settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    *,
    start_scheduler: Optional[bool] = None,
) -> FastAPI:
    """Build the application; every service hangs off ``app.state``."""
    settings = settings or default_settings
    store = store or Store(settings.database_url)
    if start_scheduler is None:
        start_scheduler = settings.scheduler_enabled

    tokens = TokenLifecycleManager(store, settings)
    orchestrator = SyncOrchestrator(store, tokens, settings)
    scheduler = SyncScheduler(tokens, orchestrator, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info("Starting Jira Mirror Service")
        store.init_schema()
        if start_scheduler:
            scheduler.start()
        yield
        # Shutdown
        logger.info("Stopping Jira Mirror Service")
        if start_scheduler:
            scheduler.stop()
        store.close()

    app = FastAPI(
        title="Jira Mirror Service",
        description="Mirror Jira Cloud data into a local database",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.tokens = tokens
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler
    app.state.auth_states = AuthStateRegistry(settings.auth_state_ttl_seconds)

    # Include API routers
    app.include_router(auth.router)
    app.include_router(accounts.router)
    app.include_router(sync.router)
    app.include_router(data.router)
    app.include_router(dashboard.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "Jira Mirror"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jiramirror.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=False,
        log_level=default_settings.log_level.lower(),
    )
