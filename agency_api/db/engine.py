"""Database engine builder.

One engine per process, built by the application factory:
- PostgreSQL (and other network databases): bounded QueuePool, pre-ping
- SQLite: foreign keys enforced; in-memory URLs share one connection (StaticPool)
"""

import logging
import re
from typing import Optional

from sqlalchemy import Engine, StaticPool, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from agency_api.config import env

logger = logging.getLogger(__name__)


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_sqlite_memory(url: str) -> bool:
    return _is_sqlite(url) and (":memory:" in url or url.rstrip("/") in {"sqlite:", "sqlite+pysqlite:"})


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, pool_size: Optional[int] = None, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the given URL.

    Args:
        url: Database URL
        pool_size: QueuePool size for network databases (default DB_POOL_SIZE)
        echo: Log SQL statements

    Returns:
        Configured Engine
    """
    if _is_sqlite(url):
        kwargs: dict = {"connect_args": {"check_same_thread": False}, "echo": echo}
        if _is_sqlite_memory(url):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        _enable_sqlite_foreign_keys(engine)
    else:
        size = pool_size or env.get_db_pool_size()
        engine = create_engine(
            url,
            pool_size=size,
            max_overflow=0,
            pool_pre_ping=True,
            echo=echo,
        )

    logger.info(
        "Database engine created",
        extra={"event": "db.engine.created", "url": _mask_password(url)},
    )
    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to the engine.

    expire_on_commit is off so handlers can serialize rows after committing.
    """
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
