from collections.abc import Iterator
from contextlib import contextmanager
import logging

from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import QueuePool

from cloudfs.config import Settings

# Importing the models registers their tables on SQLModel.metadata
from cloudfs import models  # noqa: F401

logger = logging.getLogger("cloudfs.db")


def make_engine(settings: Settings) -> Engine:
    return create_engine(
        settings.db_url,
        connect_args=settings.db_connect_args,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False,
    )


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
    ensure_schema_compatibility(engine)


def ensure_schema_compatibility(engine: Engine) -> None:
    """Add the sibling name index to databases created before it existed."""
    with engine.connect() as conn:
        try:
            # Same statement works on SQLite and PostgreSQL
            conn.execute(text(
                "CREATE UNIQUE INDEX IF NOT EXISTS uq_attachment_sibling "
                "ON attachment (owner_id, folder, filename)"
            ))
            conn.commit()
            logger.info("Database schema is up to date")
        except OperationalError as e:
            logger.warning(f"Could not check or migrate database schema: {e}")


def get_session(engine: Engine) -> Iterator[Session]:
    with Session(engine) as session:
        yield session


session_scope = contextmanager(get_session)

