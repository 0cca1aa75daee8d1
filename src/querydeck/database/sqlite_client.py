from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .migrate import ensure_item_search_table
from .schema import Base


def get_engine(sqlite_path: str):
    engine_url = f"sqlite:///{sqlite_path}"
    engine = create_engine(engine_url, future=True)
    Base.metadata.create_all(engine)
    ensure_item_search_table(engine)
    return engine


def get_session(sqlite_path: str) -> Session:
    """Get a SQLAlchemy session (caller must close it)."""
    engine = get_engine(sqlite_path)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


@contextmanager
def session_context(sqlite_path: str) -> Generator[Session, None, None]:
    """
    Context manager for SQLAlchemy sessions.
    
    Rolls back on error and always closes the session. Commits stay
    explicit: writers such as the seed loader commit themselves.
    
    Usage:
        with session_context(sqlite_path) as session:
            planner.plan(session, ...)
    """
    session = get_session(sqlite_path)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
