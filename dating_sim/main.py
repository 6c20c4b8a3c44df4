import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from dating_sim.core.config import Settings, settings
from dating_sim.core.errors import StorageUnavailableError, register_exception_handlers
from dating_sim.core.logging_config import setup_logging
from dating_sim.database import build_engine, build_session_factory, create_tables
from dating_sim.routers import characters, conversation, dialogues, game_state, health, save_slots, users
from dating_sim.services.catalog import seed_characters
from dating_sim.services.conversation import GatewaySelector
from dating_sim.services.memory_storage import MemoryStorage
from dating_sim.services.sql_storage import SqlStorage

logger = logging.getLogger(__name__)


async def _use_database(app: FastAPI, database_url: str) -> None:
    engine = build_engine(database_url)
    try:
        create_tables(engine)
        session_factory = build_session_factory(engine)
        db = session_factory()
        try:
            await seed_characters(SqlStorage(db=db))
        finally:
            db.close()
    except Exception:
        engine.dispose()
        raise

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.storage_backend = "database"


async def _use_memory(app: FastAPI) -> None:
    memory = MemoryStorage()
    await seed_characters(memory)
    app.state.session_factory = None
    app.state.memory_storage = memory
    app.state.storage_backend = "memory"


async def init_storage(app: FastAPI) -> None:
    """
    Select the storage backend. Without DATABASE_URL, or when the database
    cannot be reached, the service runs on a seeded in-memory store so that
    reads keep working.
    """
    database_url = app.state.settings.DATABASE_URL
    if not database_url:
        logger.warning("DATABASE_URL is not set; using non-persistent in-memory storage.")
        await _use_memory(app)
        return

    try:
        await _use_database(app, database_url)
        logger.info("Using database storage.")
    except (SQLAlchemyError, StorageUnavailableError) as e:
        logger.error(f"Database unavailable at startup, degrading to in-memory storage: {e}", exc_info=True)
        await _use_memory(app)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_storage(app)
    yield
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.dispose()


def _mount_frontend(app: FastAPI, static_dir: Path) -> None:
    if (static_dir / "assets").is_dir():
        app.mount("/assets", StaticFiles(directory=static_dir / "assets"), name="assets")

    # SPA fallback: non-API paths serve the file if it exists, else index.html
    @app.get("/{path:path}", include_in_schema=False)
    async def spa_fallback(path: str):
        if path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = (static_dir / path).resolve()
        if path and candidate.is_file() and static_dir.resolve() in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(static_dir / "index.html")

    logger.info(f"Serving frontend from {static_dir}")


def create_app(
    app_settings: Optional[Settings] = None,
    gateway_selector: Optional[GatewaySelector] = None,
) -> FastAPI:
    app_settings = app_settings or settings
    setup_logging(app_settings.LOG_LEVEL, app_settings.LOG_FILE)

    app = FastAPI(title="Multiverse Dating Sim API", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.storage_backend = "starting"
    app.state.gateway_selector = gateway_selector or GatewaySelector(
        server_api_key=app_settings.OPENROUTER_API_KEY,
        base_url=app_settings.OPENROUTER_BASE_URL,
        timeout=app_settings.CONVERSATION_TIMEOUT_SECONDS,
    )
    register_exception_handlers(app)

    for module in (health, characters, users, game_state, dialogues, conversation, save_slots):
        app.include_router(module.router, prefix="/api")

    if app_settings.STATIC_DIR:
        static_dir = Path(app_settings.STATIC_DIR)
        if (static_dir / "index.html").is_file():
            _mount_frontend(app, static_dir)
        else:
            logger.warning(f"STATIC_DIR {static_dir} has no index.html; frontend not served.")

    return app


# Default app instance for uvicorn (dating_sim.main:app)
app = create_app()
