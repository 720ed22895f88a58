from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
)

from crudgate.core.config import parse_config
from crudgate.core.introspection.catalog import ColumnDescriptor
from crudgate.core.types import ColumnType
from crudgate.gate import create_app

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50)),
    Column("age", Integer),
    Column("score", Float),
    Column("active", Boolean),
    Column("avatar", LargeBinary),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
)

tags = Table(
    "tags",
    metadata,
    Column("label", String(20)),
)

USER_ROWS = [
    {"name": "Alice", "age": 31, "score": 9.5, "active": True, "created_at": datetime(2024, 1, 10, 8, 0)},
    {"name": "Albert", "age": 25, "score": 7.0, "active": False, "created_at": datetime(2024, 2, 1, 12, 30)},
    {"name": "Bob", "age": 19, "score": 5.5, "active": True, "created_at": datetime(2024, 3, 5, 9, 15)},
    {"name": "Carol", "age": 42, "score": 8.0, "active": True, "created_at": datetime(2024, 4, 20, 18, 45)},
]


@pytest.fixture
def db_file(tmp_path):
    """A SQLite database with a seeded `users` table and a key-less `tags` table."""
    path = tmp_path / "gate.db"
    engine = create_engine(f"sqlite:///{path}")
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(insert(users), USER_ROWS)
        conn.execute(insert(tags), [{"label": "red"}])
    engine.dispose()
    return path


def make_config(db_file, gate=None, **table_overrides):
    table = {
        "name": "users",
        "database": "main",
        "table": "users",
        "path_prefix": "/users",
        "field_map": {"userName": "name", "userAge": "age"},
    }
    table.update(table_overrides)
    return parse_config(
        {
            "gate": {"project_name": "test gate", "log_level": "error", **(gate or {})},
            "databases": [{"name": "main", "driver": "sqlite", "database": str(db_file)}],
            "tables": [
                table,
                {"name": "tags", "database": "main", "path_prefix": "/tags", "handler_filters": ["list", "save"]},
            ],
        }
    )


@pytest.fixture
def client(db_file):
    app = create_app(make_config(db_file))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_columns():
    """Catalog for the parser: id int64 pk auto, name string, age int32, plus a few typed extras."""
    descriptors = [
        ColumnDescriptor(name="id", declared_type=ColumnType.INT64, is_primary_key=True, is_auto_increment=True),
        ColumnDescriptor(name="name", declared_type=ColumnType.STRING),
        ColumnDescriptor(name="age", declared_type=ColumnType.INT32),
        ColumnDescriptor(name="active", declared_type=ColumnType.BOOL),
        ColumnDescriptor(name="created_at", declared_type=ColumnType.TIMESTAMP),
    ]
    return {d.name: d for d in descriptors}


@pytest.fixture
def app_factory(db_file):
    """Build an app over the seeded database with gate/table overrides."""

    def factory(gate=None, **table_overrides):
        return create_app(make_config(db_file, gate, **table_overrides))

    return factory
