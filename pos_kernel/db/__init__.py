"""Database layer - engine, base classes and column types."""

from pos_kernel.db.base import AccountScopedBase, Base, DecimalText, UTCDateTime
from pos_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "AccountScopedBase",
    "Base",
    "DecimalText",
    "UTCDateTime",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]
