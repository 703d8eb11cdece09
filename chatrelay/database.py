"""Database engine and session management.

The engine is created lazily on first use and the schema is created exactly
once per process, even when the first requests arrive concurrently.
"""
import logging
import threading
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from chatrelay.config import settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_schema_ready = False
_lock = threading.RLock()


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first call."""
    global _engine
    if _engine is None:
        with _lock:
            if _engine is None:
                url = settings.DATABASE_URL
                # SQLite connections are used from FastAPI's threadpool
                connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
                _engine = create_engine(url, connect_args=connect_args, echo=False)
    return _engine


def create_tables(engine: Engine) -> None:
    """Create the ``chats`` and ``prompts`` tables on ``engine``."""
    # Registers the table models on SQLModel.metadata
    from chatrelay.models import chat  # noqa: F401

    SQLModel.metadata.create_all(engine)


def init_db() -> None:
    """Create the schema on the process-wide engine, once."""
    global _schema_ready
    if _schema_ready:
        return
    with _lock:
        if not _schema_ready:
            create_tables(get_engine())
            _schema_ready = True
            logger.info("Database schema ready")


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    init_db()
    with Session(get_engine()) as session:
        yield session
