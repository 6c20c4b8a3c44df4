import logging
from typing import Iterator

from fastapi import Request

from dating_sim.core.config import Settings
from dating_sim.services.conversation import GatewaySelector
from dating_sim.services.sql_storage import SqlStorage
from dating_sim.services.storage import Storage

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Iterator[Storage]:
    """
    FastAPI dependency that provides the active storage backend.

    With a database, a fresh session is opened per request and always
    closed, even if errors occur. Without one, the shared in-memory store
    is used.
    """
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        yield request.app.state.memory_storage
        return

    db = session_factory()
    try:
        yield SqlStorage(db=db)
    finally:
        db.close()


def get_gateway_selector(request: Request) -> GatewaySelector:
    """Provides the conversation gateway selector built at startup."""
    return request.app.state.gateway_selector
