import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from servicedesk.config import get_settings
from servicedesk import models  # noqa: F401  (registers the tables on SQLModel.metadata)

logger = logging.getLogger(__name__)


def build_engine(database_url: str, **kwargs) -> Engine:
    """
    Creates the engine for a database URL.
    SQLite gets check_same_thread disabled (FastAPI runs sync routes in a
    thread pool) and foreign keys switched on for every connection, so
    association rows follow their service order on delete.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(database_url, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

        return engine

    kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, **kwargs)


engine = build_engine(get_settings().database_url)


def create_db_and_tables(bind: Engine = None):
    """Creates every table defined in servicedesk.models. Called on startup."""
    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database schema ready")


def get_session() -> Iterator[Session]:
    """
    FastAPI dependency: one session per request, closed on every exit path.
    """
    with Session(engine) as session:
        yield session


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """
    Runs the enclosed writes as one transaction: commit when the block
    finishes, rollback when anything raises.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
