# src/crudgate/core/introspection/sql.py
from typing import Any, Dict, List

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from crudgate.core.errors import SchemaError
from crudgate.core.types import get_eq_type
from .catalog import ColumnDescriptor


class SqlIntrospector:
    """Reads column metadata through SQLAlchemy's dialect-neutral inspector."""

    def __init__(self, engine: Engine, schema: str | None = None):
        self.engine = engine
        self.schema = schema

    def get_columns(self, relation: str) -> List[ColumnDescriptor]:
        # A fresh inspector per call; inspectors cache reflection results.
        inspector = inspect(self.engine)
        try:
            column_data = inspector.get_columns(relation, schema=self.schema)
            pks = inspector.get_pk_constraint(relation, schema=self.schema).get("constrained_columns") or []
        except NoSuchTableError as e:
            raise SchemaError(f"relation '{relation}' does not exist") from e
        except SQLAlchemyError as e:
            raise SchemaError(f"cannot inspect relation '{relation}': {e}") from e

        return [self._describe(col, pks) for col in column_data]

    @staticmethod
    def _describe(col: Dict[str, Any], pks: List[str]) -> ColumnDescriptor:
        sql_type = str(col["type"])
        declared = get_eq_type(sql_type)
        is_pk = col["name"] in pks

        # Dialects report True, False or "auto"; a lone integer primary key
        # left at "auto" is an identity column in every supported backend.
        autoincrement = col.get("autoincrement", "auto")
        is_auto = autoincrement is True or (
            autoincrement == "auto" and is_pk and len(pks) == 1 and declared.is_integer
        )

        return ColumnDescriptor(
            name=col["name"],
            declared_type=declared,
            sql_type=sql_type,
            is_primary_key=is_pk,
            is_auto_increment=is_auto,
            is_nullable=bool(col.get("nullable", True)),
            comment=col.get("comment"),
        )
