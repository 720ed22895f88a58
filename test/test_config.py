import pytest

from crudgate.core.config import Operation, load_config, parse_config
from crudgate.core.errors import ConfigError
from crudgate.db.client import DbConfig

YAML = """
gate:
  project_name: Inventory
  route_prefix: api/
  strict_conditions: true
databases:
  - name: main
    driver: sqlite
    database: ":memory:"
tables:
  - name: users
    database: main
    path_prefix: users/
    field_map:
      userName: name
    list_fields: [id, name]
    handler_filters: [list, get]
  - name: products
    database: main
    table: product
    path_prefix: /shop/products
"""


def test_load_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(YAML)

    config = load_config(path)

    assert config.gate.project_name == "Inventory"
    assert config.gate.route_prefix == "/api"
    assert config.gate.strict_conditions is True
    users, products = config.tables
    assert users.table == "users"
    assert users.path_prefix == "/users"
    assert users.operations == [Operation.LIST, Operation.GET]
    assert users.field_map == {"userName": "name"}
    assert products.table == "product"
    assert products.operations == list(Operation)


def base(**table):
    entry = {"name": "users", "database": "main"}
    entry.update(table)
    return {"databases": [{"name": "main", "driver": "sqlite"}], "tables": [entry]}


def test_field_map_must_be_injective():
    with pytest.raises(ConfigError, match="both map to column 'name'"):
        parse_config(base(field_map={"a": "name", "b": "name"}))


def test_unknown_operation_is_rejected():
    with pytest.raises(ConfigError):
        parse_config(base(operations=["save", "truncate"]))


def test_table_must_reference_a_known_database():
    with pytest.raises(ConfigError, match="unknown database"):
        parse_config(base(database="other"))


def test_path_prefixes_are_unique():
    data = base()
    data["tables"].append({"name": "users2", "database": "main", "path_prefix": "/users"})
    with pytest.raises(ConfigError, match="configured twice"):
        parse_config(data)


def test_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("tables: [unclosed")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yml")


def test_url_is_built_from_fields():
    url = DbConfig(name="pg", driver="postgres", host="db", port=5432, user="u", password="p", database="crud").url()
    assert url.drivername == "postgresql+psycopg2"
    assert url.host == "db"
    assert url.port == 5432
    assert url.database == "crud"

    assert DbConfig(name="my", driver="mysql", database="crud").url().drivername == "mysql+pymysql"
    assert DbConfig(name="x", dsn="sqlite:///x.db").url() == "sqlite:///x.db"


def test_unsupported_driver():
    with pytest.raises(ConfigError):
        DbConfig(name="x", driver="oracle").url()
