"""
Module: forecast_kernel.db.engine
Responsibility: owns the process-wide SQLAlchemy engine for the forecast
    input store and hands out sessions.  The forecast service reads through
    a session factory (one session per concurrent fetch); maintenance code
    writes through ``session_scope``.
Architecture position: Kernel > DB.  May import from db/base.py.  MUST NOT
    import from selectors/, domain/, or outer layers (create_tables and
    drop_tables import models so the metadata is complete).

Invariants enforced:
    - Server databases get a pre-pinged QueuePool at READ COMMITTED, so one
      forecast never sees half of another writer's transaction.
    - SQLite connections may be shared across the fetch worker threads.

Failure modes:
    - RuntimeError from every accessor until init_engine_from_url() runs.
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from forecast_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Forecast store engine not initialized; call init_engine_from_url() first."


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    *,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous pair.

    Args:
        database_url: ``postgresql://...`` in production,
            ``sqlite:///path.db`` in tests.  In-memory SQLite is not
            supported because each fetch thread would see its own database.
        echo: Log every SQL statement.
        pool_size, max_overflow, pool_timeout, pool_recycle: QueuePool
            settings; ignored for SQLite.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    dialect = url.get_backend_name()

    options: dict[str, Any] = {"echo": echo}
    if dialect == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _engine = create_engine(url, **options)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "database": url.database, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """The factory the SQL forecast source opens its per-fetch sessions from."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Yield a session that commits on clean exit.

    An exception rolls the transaction back, is logged as
    ``transaction_rolled_back`` and propagates.
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from forecast_kernel.db.base import Base
    import forecast_kernel.models  # noqa: F401  registers every input table

    return Base.metadata


def create_tables() -> None:
    """Create every forecast input table that does not exist yet."""
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    """Drop every forecast input table.  Test and local tooling only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
