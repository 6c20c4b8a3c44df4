from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for DATABASE_URL.

    Postgres URLs get a connection pool sized for a small web service.
    In-memory SQLite (used by tests) gets a single shared connection so
    every session sees the same database.
    """
    url = make_url(database_url)
    logger.info(f"Connecting to database: {url.render_as_string(hide_password=True)}")

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, connect_args=connect_args)

    return create_engine(
        url,
        pool_size=10,   # Adjust pool size based on expected concurrency
        max_overflow=20, # Adjust based on expected peak load
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # Models must be imported so their tables are registered on Base.metadata
    from dating_sim import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified.")
