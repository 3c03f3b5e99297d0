"""
Exception classes for schemasync.
"""

from typing import Any, Dict, Optional


class SchemaSyncError(Exception):
    """Base exception for all schemasync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(SchemaSyncError):
    """Raised when there's an error in configuration."""

    pass


class SynchronizationError(SchemaSyncError):
    """Raised when a table cannot be synchronized with its definition."""

    pass


class TableDefinitionError(ConfigurationError, SynchronizationError):
    """Raised when synchronization is attempted on an incomplete table definition."""

    pass


class UnsupportedOperationError(SynchronizationError):
    """Raised when the database engine does not implement a structure capability."""

    def __init__(self, operation: str, engine: str) -> None:
        super().__init__(
            f"The {engine} engine does not perform the requested task: {operation}",
            {"operation": operation, "engine": engine},
        )
        self.operation = operation
        self.engine = engine


class DatabaseError(SchemaSyncError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when there's an error in database configuration."""

    pass


class ExecutionError(DatabaseError, SynchronizationError):
    """Raised when a statement or introspection query fails."""

    def __init__(
        self,
        message: str,
        sql: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details = {}
        if sql:
            details["sql"] = " ".join(sql.split())[:200]
        super().__init__(message, details, cause)
        self.sql = sql
