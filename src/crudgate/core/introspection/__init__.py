"""Column metadata discovery and caching."""

from .catalog import ColumnCatalog, ColumnDescriptor
from .sql import SqlIntrospector

__all__ = ["ColumnCatalog", "ColumnDescriptor", "SqlIntrospector"]
