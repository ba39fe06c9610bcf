"""Request-scoped dependencies backed by the services on ``app.state``"""

from fastapi import Request

from jiramirror.security import AuthStateRegistry
from jiramirror.services.orchestrator import SyncOrchestrator
from jiramirror.services.token_manager import TokenLifecycleManager


def get_db(request: Request):
    """Get database session"""
    db = request.app.state.store.session()
    try:
        yield db
    finally:
        db.close()


def get_tokens(request: Request) -> TokenLifecycleManager:
    return request.app.state.tokens


def get_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.orchestrator


def get_auth_states(request: Request) -> AuthStateRegistry:
    return request.app.state.auth_states
