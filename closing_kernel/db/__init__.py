"""Database plumbing for the session store."""

from closing_kernel.db.base import Base, TimestampedBase, new_id
from closing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TimestampedBase",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "new_id",
    "reset_engine",
    "session_scope",
]
