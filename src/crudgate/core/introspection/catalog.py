# src/crudgate/core/introspection/catalog.py
import threading
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from crudgate.core.errors import SchemaError
from crudgate.core.logging import color_palette, log
from crudgate.core.types import ColumnType


class ColumnDescriptor(BaseModel):
    """One storage-side column of a relation."""

    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: ColumnType
    sql_type: str = ""
    is_primary_key: bool = False
    is_auto_increment: bool = False
    is_nullable: bool = True
    comment: Optional[str] = None


ColumnFetcher = Callable[[str], List[ColumnDescriptor]]


class ColumnCatalog:
    """
    Per-relation column metadata, fetched once and reused.

    The fetch-and-store sequence runs under a single lock so that concurrent
    first lookups never fetch twice or observe a half-filled cache.  Reads of
    an already populated relation take the lock too; it is held only for a
    dictionary lookup.
    """

    def __init__(self, fetch_columns: ColumnFetcher):
        self._fetch_columns = fetch_columns
        self._cache: Dict[str, Dict[str, ColumnDescriptor]] = {}
        self._lock = threading.Lock()

    def fetch(self, relation: str) -> Dict[str, ColumnDescriptor]:
        """
        Return the columns of `relation`, keyed by storage name.

        Raises:
            SchemaError: if the relation does not exist or has no columns
        """
        with self._lock:
            columns = self._cache.get(relation)
            if columns is None:
                columns = self._load(relation)
                self._cache[relation] = columns
            return columns

    def _load(self, relation: str) -> Dict[str, ColumnDescriptor]:
        try:
            descriptors = self._fetch_columns(relation)
        except SchemaError:
            raise
        except Exception as e:
            raise SchemaError(f"cannot read columns of '{relation}': {e}") from e

        if not descriptors:
            raise SchemaError(f"relation '{relation}' not found or has no columns")

        log.debug(f"Fetched {len(descriptors)} columns for {color_palette['table'](relation)}")
        return {column.name: column for column in descriptors}

    def invalidate(self, relation: Optional[str] = None) -> None:
        """Drop cached metadata for one relation, or for all when None."""
        with self._lock:
            if relation is None:
                self._cache.clear()
            else:
                self._cache.pop(relation, None)

    def primary_keys(self, relation: str) -> List[str]:
        return [c.name for c in self.fetch(relation).values() if c.is_primary_key]

    def is_cached(self, relation: str) -> bool:
        with self._lock:
            return relation in self._cache
