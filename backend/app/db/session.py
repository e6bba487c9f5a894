import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from backend.app.db.base import Base

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./books.db"
)


def make_engine(url: str = DATABASE_URL) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    # requests are served from a threadpool
    eng = create_engine(url, pool_pre_ping=True, connect_args={"check_same_thread": False})

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return eng


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def init_db(bind: Engine = engine) -> None:
    """Create missing tables. Existing tables are left as they are."""
    # register the mapped classes on Base.metadata
    from backend.app.db.models import models_v1  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("Schema ready on %s", bind.url.render_as_string(hide_password=True))


def close_db(bind: Engine = engine) -> None:
    bind.dispose()
    logger.info("Database connections closed")
