"""SQLite + SQLAlchemy storage for the analysis history.

One process-wide engine is created lazily from ``DATABASE_URL`` (or the
``database.url`` setting) and shared by every session.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/seo_analyzer.db"


class Base(DeclarativeBase):
    """Declarative base for the history tables."""


_engine: Optional[Engine] = None
_sessions: Optional[sessionmaker] = None


def _on_sqlite_connect(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    # Check rows are deleted with their analysis.
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.execute("PRAGMA busy_timeout=5000;")
    cursor.close()


def get_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Return the shared engine, creating it on first use.

    Args:
        database_url: SQLAlchemy URL.  Ignored once the engine exists;
            defaults to ``DATABASE_URL`` or ``sqlite:///data/seo_analyzer.db``.
        echo: Log every SQL statement.
    """
    global _engine
    if _engine is not None:
        return _engine

    url = make_url(database_url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL)
    is_sqlite = url.get_backend_name() == "sqlite"
    in_memory = is_sqlite and url.database in (None, "", ":memory:")
    if is_sqlite and not in_memory:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine_kwargs: dict = {}
    if in_memory:
        # One shared connection, so executor threads see the same tables.
        engine_kwargs["poolclass"] = StaticPool
    _engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        pool_pre_ping=True,
        **engine_kwargs,
    )
    if is_sqlite:
        event.listen(_engine, "connect", _on_sqlite_connect)
    logger.info("History database: %s", url.render_as_string(hide_password=True))
    return _engine


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Transactional session: commits on success, rolls back on error.

    Usage::

        with get_session() as session:
            session.add(record)
    """
    global _sessions
    if _sessions is None:
        _sessions = sessionmaker(bind=get_engine(), expire_on_commit=False)
    session = _sessions()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(database_url: Optional[str] = None, echo: bool = False) -> None:
    """Create the history tables if they do not exist yet."""
    engine = get_engine(database_url=database_url, echo=echo)
    import seo_analyzer.models  # noqa: F401  (registers tables on Base.metadata)
    Base.metadata.create_all(bind=engine)
    logger.debug("History tables ready.")


def reset_engine() -> None:
    """Dispose of the shared engine so the next call starts fresh (tests)."""
    global _engine, _sessions
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _sessions = None
