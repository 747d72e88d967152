"""Database layer: declarative base, column types, engine and listeners."""

from fair_kernel.db.base import Base, CreatedAtBase, UUIDString
from fair_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
)
from fair_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from fair_kernel.db.types import MoneyType, UTCDateTime, round_money, to_decimal

__all__ = [
    "Base",
    "CreatedAtBase",
    "UUIDString",
    "MoneyType",
    "UTCDateTime",
    "round_money",
    "to_decimal",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "is_postgres",
    "reset_engine",
    "session_scope",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
]
