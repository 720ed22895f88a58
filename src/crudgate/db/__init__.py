"""Database interaction components for crudgate."""

from crudgate.db.client import DbClient, DbConfig, PoolConfig
from crudgate.db.store import RowStore

__all__ = [
    "DbClient",
    "DbConfig",
    "PoolConfig",
    "RowStore",
]
