"""
schemasync: Declarative table definitions synchronized with PostgreSQL.

Describe the shape a table should have and schemasync creates it, alters
it, or drops and recreates it. Capture mode records the statements instead
of executing them.
"""

__version__ = "0.1.0"
__author__ = "schemasync Contributors"

from .config import SchemaSyncConfig, StructureConfig
from .exceptions import (
    SchemaSyncError,
    ConfigurationError,
    SynchronizationError,
    TableDefinitionError,
    UnsupportedOperationError,
    DatabaseError,
    ExecutionError,
)
from .database import ConnectionPool, SchemaIntrospector
from .schema.structure import DatabaseStructure, SchemaChange, ChangeType

__all__ = [
    "__version__",
    "SchemaSyncConfig",
    "StructureConfig",
    "SchemaSyncError",
    "ConfigurationError",
    "SynchronizationError",
    "TableDefinitionError",
    "UnsupportedOperationError",
    "DatabaseError",
    "ExecutionError",
    "ConnectionPool",
    "SchemaIntrospector",
    "DatabaseStructure",
    "SchemaChange",
    "ChangeType",
]
