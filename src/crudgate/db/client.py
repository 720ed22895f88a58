# src/crudgate/db/client.py
"""Database connection configuration and engine management."""

from typing import Optional

from pydantic import BaseModel, Field
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from crudgate.core.errors import ConfigError, PersistenceError
from crudgate.core.logging import color_palette, log

# Driver name (as written in the YAML config) -> SQLAlchemy dialect+driver
DRIVERS = {
    "postgres": "postgresql+psycopg2",
    "postgresql": "postgresql+psycopg2",
    "mysql": "mysql+pymysql",
    "sqlite": "sqlite",
}


class PoolConfig(BaseModel):
    """Connection pool options."""

    max_open_conns: int = 0  # 0 = dialect default
    max_idle_conns: int = 0
    conn_max_lifetime: int = 0  # seconds, 0 = never recycle
    debug: bool = False


class DbConfig(BaseModel):
    """One named database connection."""

    name: str
    driver: str = "postgres"
    host: str = "localhost"
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = ""
    dsn: Optional[str] = None
    options: PoolConfig = Field(default_factory=PoolConfig)

    def url(self) -> URL | str:
        """Return the configured DSN, or build one from the discrete fields."""
        if self.dsn:
            return self.dsn

        drivername = DRIVERS.get(self.driver.lower())
        if drivername is None:
            raise ConfigError(f"unsupported database driver: {self.driver}")

        if drivername == "sqlite":
            return URL.create("sqlite", database=self.database or None)

        return URL.create(
            drivername,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )


class DbClient:
    """Owns the SQLAlchemy engine (and its pool) for one database."""

    def __init__(self, config: DbConfig):
        self.config = config
        self.engine: Engine = create_engine(config.url(), **self._engine_options())

    def _engine_options(self) -> dict:
        options = self.config.options
        kwargs: dict = {"echo": options.debug, "pool_pre_ping": True}
        if self.config.driver.lower() == "sqlite":
            return kwargs
        if options.max_idle_conns > 0:
            kwargs["pool_size"] = options.max_idle_conns
        if options.max_open_conns > 0:
            idle = kwargs.get("pool_size", 5)
            kwargs["max_overflow"] = max(options.max_open_conns - idle, 0)
        if options.conn_max_lifetime > 0:
            kwargs["pool_recycle"] = options.conn_max_lifetime
        return kwargs

    def test_connection(self) -> None:
        """Run a trivial query; raises PersistenceError when the database is unreachable."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise PersistenceError(f"cannot connect to database '{self.config.name}': {e}") from e
        log.success(f"Connected to database {color_palette['schema'](self.config.name)}")

    def close(self) -> None:
        self.engine.dispose()
