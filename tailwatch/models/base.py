"""
SQLAlchemy base, engine and session handling.

The application database only holds users and invite codes, so a single
SQLite file is the default; any SQLAlchemy URL works via DATABASE_URL.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tailwatch.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite leaves foreign key enforcement off per connection
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Build an engine for url.

    SQLite connections are shared across Flask's worker threads, and an
    in-memory database is pinned to one connection so every session sees
    the same tables.
    """
    kwargs = {'echo': echo}
    is_sqlite = url.startswith('sqlite')

    if is_sqlite:
        kwargs['connect_args'] = {'check_same_thread': False}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool

    db_engine = create_engine(url, **kwargs)
    if is_sqlite:
        event.listen(db_engine, 'connect', _enable_sqlite_foreign_keys)
    return db_engine


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Objects stay readable after the session closes
    )


engine = create_db_engine(config.database.url, echo=config.debug)
SessionLocal = create_session_factory(engine)


@contextmanager
def get_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Transactional session scope.

    Usage:
        with get_session() as session:
            session.add(...)

    Commits on success, rolls back and re-raises on error.
    """
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(bind=bind or engine)
