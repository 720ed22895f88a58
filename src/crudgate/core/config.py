"""
Service configuration.

The YAML file has three top-level sections::

    gate:
      project_name: "Inventory API"
      route_prefix: "/api"
    databases:
      - name: main
        driver: postgres
        host: localhost
        port: 5432
        user: postgres
        password: secret
        database: inventory
    tables:
      - name: users
        database: main
        table: users
        path_prefix: /users
        field_map:
          userName: name
        list_fields: [id, name]
        detail_fields: [id, name, created_at]
        handler_filters: [save, get, list, page, delete, table]
"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from crudgate.core.errors import ConfigError
from crudgate.db.client import DbConfig


class Operation(str, Enum):
    """Operations a table handler can expose, one per route suffix."""

    SAVE = "save"
    GET = "get"
    LIST = "list"
    PAGE = "page"
    DELETE = "delete"
    TABLE = "table"

    def __str__(self) -> str:
        return self.value


class GateConfig(BaseModel):
    """Application-level settings."""

    project_name: str = "crudgate"
    version: str = "0.1.0"
    description: str = "Configuration-driven CRUD endpoints over relational tables"
    author: Optional[str] = None
    email: Optional[str] = None
    route_prefix: str = ""
    debug: bool = False
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    # Fail the whole request on a malformed condition value instead of dropping it.
    strict_conditions: bool = False

    @field_validator("route_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return normalize_prefix(value)


class TableConfig(BaseModel):
    """One relation exposed under a path prefix."""

    name: str
    database: str
    table: Optional[str] = None
    path_prefix: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")
    field_map: Dict[str, str] = {}
    list_fields: List[str] = []
    detail_fields: List[str] = []
    operations: List[Operation] = Field(
        default_factory=lambda: list(Operation),
        validation_alias=AliasChoices("operations", "handler_filters"),
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _defaults(self) -> "TableConfig":
        if not self.table:
            self.table = self.name
        self.path_prefix = normalize_prefix(self.path_prefix or self.name)
        return self

    @field_validator("field_map")
    @classmethod
    def _injective(cls, field_map: Dict[str, str]) -> Dict[str, str]:
        seen: Dict[str, str] = {}
        for api_name, storage_name in field_map.items():
            if storage_name in seen:
                raise ValueError(
                    f"fields '{seen[storage_name]}' and '{api_name}' both map to column '{storage_name}'"
                )
            seen[storage_name] = api_name
        return field_map


class ServiceConfig(BaseModel):
    """Root of the YAML configuration."""

    gate: GateConfig = Field(default_factory=GateConfig)
    databases: List[DbConfig] = []
    tables: List[TableConfig] = []

    @model_validator(mode="after")
    def _references(self) -> "ServiceConfig":
        names = [db.name for db in self.databases]
        if len(names) != len(set(names)):
            raise ValueError("database names must be unique")

        prefixes = set()
        for table in self.tables:
            if table.database not in names:
                raise ValueError(f"table '{table.name}' references unknown database '{table.database}'")
            if table.path_prefix in prefixes:
                raise ValueError(f"path prefix '{table.path_prefix}' is configured twice")
            prefixes.add(table.path_prefix)
        return self


def normalize_prefix(prefix: str) -> str:
    """'users/' -> '/users'; '' and '/' -> ''."""
    prefix = prefix.strip().strip("/")
    return f"/{prefix}" if prefix else ""


def parse_config(data: dict) -> ServiceConfig:
    try:
        return ServiceConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def load_config(path: Union[str, Path]) -> ServiceConfig:
    """Read and validate a YAML configuration file."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return parse_config(data)
