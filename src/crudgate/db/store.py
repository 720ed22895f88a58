# src/crudgate/db/store.py
"""Row-store access over SQLAlchemy Core."""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy import Connection, MetaData, Table, and_, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from crudgate.core.errors import PersistenceError, SchemaError
from crudgate.core.introspection.catalog import ColumnDescriptor
from crudgate.core.introspection.sql import SqlIntrospector
from crudgate.core.query.builder import QueryBuilder, condition_clause
from crudgate.core.query.models import Condition, QueryRequest

Row = Dict[str, Any]


@contextmanager
def persistence_errors(action: str, relation: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as PersistenceError."""
    try:
        yield
    except SQLAlchemyError as e:
        raise PersistenceError(f"{action} on '{relation}' failed: {e.__class__.__name__}: {e}") from e


class RowStore:
    """
    Filtered reads and single-statement writes against named relations.

    Every method runs exactly one logical operation; nothing is retried.
    """

    def __init__(self, engine: Engine, schema: str | None = None):
        self.engine = engine
        self.schema = schema
        self.introspector = SqlIntrospector(engine, schema)
        self._metadata = MetaData(schema=schema)
        self._tables: Dict[str, Table] = {}
        self._lock = threading.Lock()

    # ===== Metadata =====

    def get_columns(self, relation: str) -> List[ColumnDescriptor]:
        return self.introspector.get_columns(relation)

    def table(self, relation: str) -> Table:
        """Reflect `relation` once and keep the Table object."""
        with self._lock:
            table = self._tables.get(relation)
            if table is None:
                try:
                    table = Table(relation, self._metadata, autoload_with=self.engine)
                except NoSuchTableError as e:
                    raise SchemaError(f"relation '{relation}' does not exist") from e
                except SQLAlchemyError as e:
                    raise SchemaError(f"cannot reflect relation '{relation}': {e}") from e
                self._tables[relation] = table
            return table

    # ===== Reads =====

    def query(
        self,
        request: QueryRequest,
        fields: Sequence[str] = (),
        paginate: bool = False,
    ) -> List[Row]:
        builder = QueryBuilder(self.table(request.table), request)
        with persistence_errors("query", request.table), self.engine.connect() as conn:
            result = conn.execute(builder.select(fields, paginate=paginate))
            return [dict(row._mapping) for row in result]

    def count(self, request: QueryRequest) -> int:
        builder = QueryBuilder(self.table(request.table), request)
        with persistence_errors("count", request.table), self.engine.connect() as conn:
            return int(conn.execute(builder.count()).scalar_one())

    def first(self, request: QueryRequest, fields: Sequence[str] = ()) -> Optional[Row]:
        builder = QueryBuilder(self.table(request.table), request)
        with persistence_errors("get", request.table), self.engine.connect() as conn:
            row = conn.execute(builder.select(fields, limit=1)).first()
            return dict(row._mapping) if row is not None else None

    # ===== Writes =====

    def insert(self, relation: str, values: Mapping[str, Any], primary_keys: Sequence[str] = ()) -> Row:
        """Insert one row and return it as stored (re-read by primary key)."""
        table = self.table(relation)
        with persistence_errors("insert", relation), self.engine.begin() as conn:
            result = conn.execute(insert(table).values(dict(values)))
            key = self._inserted_key(result, values, primary_keys)
            if key is None:
                return dict(values)
            row = self._fetch_by_key(conn, table, key)
            return row if row is not None else dict(values)

    def update_by_key(self, relation: str, key: Mapping[str, Any], values: Mapping[str, Any]) -> Optional[Row]:
        """
        Update the row identified by `key` and re-read it.

        Both statements share one transaction, so a concurrent delete cannot
        land between the write and the read.  Returns None if no row matched.
        """
        table = self.table(relation)
        with persistence_errors("update", relation), self.engine.begin() as conn:
            if values:
                conn.execute(table.update().where(self._key_clause(table, key)).values(dict(values)))
            return self._fetch_by_key(conn, table, key)

    def delete(self, request: QueryRequest) -> int:
        builder = QueryBuilder(self.table(request.table), request)
        with persistence_errors("delete", request.table), self.engine.begin() as conn:
            return conn.execute(builder.delete()).rowcount

    # ===== Helpers =====

    @staticmethod
    def _key_clause(table: Table, key: Mapping[str, Any]):
        return and_(*[condition_clause(table, Condition(field=name, value=value)) for name, value in key.items()])

    def _fetch_by_key(self, conn: Connection, table: Table, key: Mapping[str, Any]) -> Optional[Row]:
        row = conn.execute(select(table).where(self._key_clause(table, key)).limit(1)).first()
        return dict(row._mapping) if row is not None else None

    @staticmethod
    def _inserted_key(result, values: Mapping[str, Any], primary_keys: Sequence[str]) -> Optional[Dict[str, Any]]:
        if not primary_keys:
            return None
        inserted = result.inserted_primary_key
        generated = inserted._mapping if inserted is not None else {}
        key: Dict[str, Any] = {}
        for name in primary_keys:
            value = values.get(name)
            if value is None:
                value = generated.get(name)
            if value is None:
                return None
            key[name] = value
        return key
