from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .schema import create_all


def get_engine(sqlite_path: str) -> Engine:
    engine_url = f"sqlite:///{sqlite_path}"
    engine = create_engine(engine_url, future=True)
    create_all(engine_url)
    return engine


def make_session(engine: Engine) -> Session:
    """Open a read session on an existing engine (caller must close it)."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def get_session(sqlite_path: str) -> Session:
    """Get a SQLAlchemy session (caller must close it)."""
    return make_session(get_engine(sqlite_path))


@contextmanager
def session_context(sqlite_path: str) -> Generator[Session, None, None]:
    """
    Context manager for SQLAlchemy sessions.

    Rolls back on error and always closes the session. Reads never commit;
    seeding code commits explicitly.

    Usage:
        with session_context(sqlite_path) as session:
            # use session
    """
    session = get_session(sqlite_path)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
