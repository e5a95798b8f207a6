from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from workout_tracker.core.config import settings
from workout_tracker.core.logger import get_logger
from workout_tracker.database.base import Base

logger = get_logger("database")


def build_engine(database_url: str = None):
    """Engine for the durable map; SQLite needs cross-thread access for the API server."""
    url = database_url or settings.DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, future=True, connect_args=connect_args)


def init_db(engine) -> sessionmaker:
    """Create tables if needed and return a session factory bound to the engine."""
    import workout_tracker.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(engine)
    logger.info(f"Durable map tables ensured on {engine.url}")
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@contextmanager
def session_scope(session_factory: sessionmaker):
    """Context manager for a database session with commit/rollback."""
    session: Session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
