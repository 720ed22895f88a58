"""
crudgate: configuration-driven CRUD endpoints over relational tables.
"""

from crudgate.api.crud import CrudManager, CrudOps
from crudgate.core.config import GateConfig, Operation, ServiceConfig, TableConfig, load_config
from crudgate.db import DbClient, DbConfig, PoolConfig, RowStore
from crudgate.gate import ApiGate, create_app

__version__ = "0.1.0"

__all__ = [
    "ApiGate",
    "CrudManager",
    "CrudOps",
    "DbClient",
    "DbConfig",
    "GateConfig",
    "Operation",
    "PoolConfig",
    "RowStore",
    "ServiceConfig",
    "TableConfig",
    "create_app",
    "load_config",
]
