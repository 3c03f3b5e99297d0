"""
Configuration system for schemasync using Pydantic.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import parse_qs, urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError, DatabaseConfigurationError


class ConnectionConfig(BaseModel):
    """Database connection configuration."""

    host: str = Field(..., description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: str = Field("", description="Database password")

    # Connection pool settings
    min_size: int = Field(1, description="Minimum connections in pool")
    max_size: int = Field(5, description="Maximum connections in pool")

    # Connection settings
    command_timeout: float = Field(60.0, description="Command timeout in seconds")
    server_settings: Dict[str, str] = Field(
        default_factory=lambda: {"application_name": "schemasync"},
        description="PostgreSQL server settings",
    )
    ssl_mode: Optional[str] = Field(None, description="SSL mode")

    @field_validator("database")
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Create configuration from database URL."""
        parsed = urlparse(url)

        if parsed.scheme not in ("postgresql", "postgres"):
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigurationError("Database name is required")

        query_params = parse_qs(parsed.query) if parsed.query else {}

        config_data = {
            "host": parsed.hostname or "localhost",
            "port": parsed.port or 5432,
            "database": parsed.path.lstrip("/"),
            "user": parsed.username or "",
            "password": parsed.password or "",
        }
        if "sslmode" in query_params:
            config_data["ssl_mode"] = query_params["sslmode"][0]

        return cls(**config_data)

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Convert to asyncpg connection kwargs."""
        kwargs = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "command_timeout": self.command_timeout,
            "server_settings": self.server_settings,
        }
        if self.ssl_mode:
            kwargs["ssl"] = self.ssl_mode
        return kwargs


class StructureConfig(BaseModel):
    """Defaults injected into every structure session."""

    character_encoding: str = Field(
        "utf8", description="Default character encoding for new tables"
    )
    table_prefix: str = Field("", description="Prefix applied to every table name")
    schema_name: str = Field("public", description="Database schema holding the tables")
    capture_only: bool = Field(
        False, description="Record statements instead of executing them"
    )

    def prefixed(self, table: str) -> str:
        """Get the table name as stored in the database."""
        return f"{self.table_prefix}{table}"


class ColumnSpec(BaseModel):
    """A single column declared in a configuration file."""

    name: str = Field(..., description="Column name")
    type: Union[str, List[Any]] = Field("int", description="Type name or enum values")
    null_default: Any = Field(
        True, description="True for nullable, False for not null, anything else is the default"
    )
    key: Optional[Union[str, List[str]]] = Field(None, description="Key type tag(s)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Column name is required")
        return v


class PrimaryKeySpec(BaseModel):
    """Auto-incrementing primary key declaration."""

    name: str = Field(..., description="Column name")
    type: str = Field("int", description="Column type")


class TableSpec(BaseModel):
    """A table definition declared in a configuration file."""

    name: str = Field(..., description="Table name (without prefix)")
    encoding: Optional[str] = Field(None, description="Character encoding override")
    primary_key: Optional[PrimaryKeySpec] = Field(None, description="Primary key column")
    columns: List[ColumnSpec] = Field(default_factory=list, description="Table columns")
    explicit: bool = Field(False, description="Drop columns not listed here")
    drop: bool = Field(False, description="Drop and recreate the table")

    @property
    def column_count(self) -> int:
        return len(self.columns) + (1 if self.primary_key else 0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


def configure_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Install handlers on the schemasync logger."""
    logger = logging.getLogger("schemasync")
    logger.setLevel(logging.DEBUG if debug else config.level)

    formatter = logging.Formatter(config.format)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=config.max_size,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )

    logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)


class SchemaSyncConfig(BaseSettings):
    """Main schemasync configuration."""

    debug: bool = Field(False, description="Enable debug mode")

    database: Optional[ConnectionConfig] = Field(
        None, description="Database connection"
    )
    structure: StructureConfig = Field(
        default_factory=StructureConfig, description="Structure defaults"
    )
    tables: List[TableSpec] = Field(
        default_factory=list, description="Declared table definitions"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_prefix="SCHEMASYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SchemaSyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def get_table(self, name: str) -> TableSpec:
        """Get a table definition by name."""
        for table in self.tables:
            if table.name.lower() == name.lower():
                return table
        raise ConfigurationError(f"Table definition '{name}' not found")

    def validate_config(self) -> None:
        """Validate the entire configuration for consistency."""
        if self.database is None:
            raise ConfigurationError("No database connection configured")

        seen: Dict[str, str] = {}
        for table in self.tables:
            key = table.name.lower()
            if key in seen:
                raise ConfigurationError(f"Table '{table.name}' is declared more than once")
            seen[key] = table.name

            if table.column_count == 0:
                raise ConfigurationError(f"Table '{table.name}' declares no columns")

            names = [c.name.lower() for c in table.columns]
            if table.primary_key:
                names.append(table.primary_key.name.lower())
            duplicates = sorted({n for n in names if names.count(n) > 1})
            if duplicates:
                raise ConfigurationError(
                    f"Table '{table.name}' declares duplicate columns: {', '.join(duplicates)}"
                )

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
