"""
Engine and session lifecycle (``pos_kernel.db.engine``).

One process-wide engine, created by ``init_engine_from_url`` and torn down
by ``reset_engine``.  SQLite engines (tests, single-device installs) keep
a single shared connection so an in-memory database outlives the session
that created it; every other backend gets a pre-pinged ``QueuePool``.

``session_scope`` is the unit of work: commit on a clean exit, rollback
and re-raise otherwise.  Sessions do not expire objects on commit, so
``ShopStore`` change events can still read rows after publishing.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from pos_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _pool_options(url: URL, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the shared engine, replacing (and disposing) any previous one.

    ``pool_size`` and ``max_overflow`` only apply to non-SQLite backends.
    """
    global _engine, _session_factory

    reset_engine()
    url = make_url(database_url)
    _engine = create_engine(url, echo=echo, **_pool_options(url, pool_size, max_overflow))
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "database": url.database, "echo": echo},
    )
    return _engine


def _initialized_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized; call init_engine_from_url() first.")
    return _session_factory


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database not initialized; call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    return _initialized_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Transactional unit of work::

        with session_scope() as session:
            ShopStore(session, account_id).insert_order(order)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every module table on the shared engine.  Idempotent."""
    from pos_kernel.db.base import Base
    from pos_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose the shared engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
