"""
Structure synchronization sessions for schemasync.

A DatabaseStructure holds the definition of one table and brings the live
database in line with it: the table is created when absent, altered when
it differs, or dropped and recreated on request. In capture mode every
statement is recorded on the connection pool instead of being executed.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..config import StructureConfig, TableSpec
from ..database.connection import ConnectionPool
from ..database.introspection import SchemaIntrospector
from ..exceptions import ExecutionError, SynchronizationError, TableDefinitionError
from .column import ColumnDescriptor
from .definition import TableDefinition
from .diff import TableDiff, compare
from .drivers import PostgresStructureDriver, StructureDriver
from .inspector import ExistingSchemaInspector
from .keys import RawKeyType


logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """Types of structure statements."""

    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ALTER_TABLE = "alter_table"
    DROP_COLUMN = "drop_column"
    RENAME_COLUMN = "rename_column"
    RENAME_TABLE = "rename_table"
    CREATE_VIEW = "create_view"
    SET_ENGINE = "set_engine"


@dataclass
class SchemaChange:
    """A structure statement issued by a session."""

    change_type: ChangeType
    table: str
    description: str
    sql: str

    # Execution results
    captured: bool = False
    executed: bool = False
    execution_time_ms: Optional[float] = None
    error: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return self.error is not None


class DatabaseStructure:
    """
    Session that defines one table at a time and synchronizes it.

    Example:
        structure = DatabaseStructure(pool)
        structure.table("User").primary_key("UserID").column("Name", "varchar(50)")
        await structure.synchronize()
    """

    def __init__(
        self,
        pool: ConnectionPool,
        config: Optional[StructureConfig] = None,
        driver: Optional[StructureDriver] = None,
        introspector: Optional[SchemaIntrospector] = None,
    ):
        self.pool = pool
        # Private copy: database_prefix() changes it for this session only.
        self.config = (config or StructureConfig()).model_copy()
        self.driver = driver or PostgresStructureDriver(self.config.schema_name)
        self.introspector = introspector or SchemaIntrospector(pool)
        self.definition = TableDefinition(self.config)
        self.inspector = ExistingSchemaInspector(self.introspector, self.config)
        self.capture_only = self.config.capture_only

    # Definition API

    def table(self, name: Optional[str] = None, encoding: Optional[str] = None):
        """Get the current table name, or start defining ``name``."""
        if not name:
            return self.definition.table()
        self.definition.table(name, encoding)
        self.inspector.bind(name)
        return self

    @property
    def table_name(self) -> str:
        return self.definition.table_name

    def column(
        self,
        name: str,
        type_spec: Any = "int",
        null_default: Any = True,
        key_type: RawKeyType = None,
    ) -> "DatabaseStructure":
        self.definition.column(name, type_spec, null_default, key_type)
        return self

    def primary_key(self, name: str, type_spec: Any = "int") -> "DatabaseStructure":
        self.definition.primary_key(name, type_spec)
        return self

    def columns(self, name: Optional[str] = None):
        return self.definition.columns(name)

    def has_column(self, name: str) -> bool:
        return self.definition.has_column(name)

    def column_type_string(self, column: Union[str, ColumnDescriptor]) -> Any:
        return self.definition.column_type_string(column)

    def define(self, spec: TableSpec) -> "DatabaseStructure":
        """Load a table declared in configuration into the definition."""
        self.table(spec.name, spec.encoding)
        if spec.primary_key:
            self.primary_key(spec.primary_key.name, spec.primary_key.type)
        for column in spec.columns:
            self.column(column.name, column.type, column.null_default, column.key)
        return self

    def database_prefix(self, prefix: Optional[str] = None):
        """Get the table name prefix, or set it for this session."""
        if prefix is None:
            return self.config.table_prefix
        self.config.table_prefix = prefix
        self.inspector.invalidate()
        return self

    def reset(self) -> "DatabaseStructure":
        """Forget the table definition and everything observed about it."""
        self.definition.reset()
        self.inspector.reset()
        return self

    # Observed state

    async def table_exists(self, table_name: Optional[str] = None) -> bool:
        return await self.inspector.table_exists(table_name)

    async def existing_columns(self) -> Dict[str, ColumnDescriptor]:
        return await self.inspector.existing_columns()

    async def column_exists(self, name: str) -> bool:
        return await self.inspector.column_exists(name)

    @property
    def captured_sql(self) -> List[str]:
        return self.pool.captured_sql

    # Statements

    def _qualified_table(self, table: Optional[str] = None) -> str:
        return self.config.prefixed(table or self.definition.table_name)

    async def query(
        self,
        sql: str,
        change_type: ChangeType = ChangeType.ALTER_TABLE,
        description: str = "",
    ) -> SchemaChange:
        """
        Issue one statement text.

        In capture mode the text is appended to the pool's capture log and
        reported as successful without touching the database.
        """
        change = SchemaChange(
            change_type=change_type,
            table=self._qualified_table() if self.definition.table_name else "",
            description=description or change_type.value,
            sql=sql,
        )

        if self.capture_only:
            self.pool.captured_sql.append(sql)
            change.captured = True
            logger.debug(f"Captured {change.change_type.value} for {change.table}")
            return change

        start_time = time.time()
        try:
            await self.pool.execute(sql)
        except ExecutionError as e:
            change.error = str(e)
            raise

        change.executed = True
        change.execution_time_ms = (time.time() - start_time) * 1000
        logger.info(f"{change.description} ({change.execution_time_ms:.1f}ms)")
        return change

    def _observed_changed(self, change: Optional[SchemaChange]) -> None:
        # Captured statements leave the live schema, and so the caches, alone.
        if change is not None and change.executed:
            self.inspector.invalidate()

    async def synchronize(self, explicit: bool = False, drop: bool = False) -> List[SchemaChange]:
        """
        Create or modify the defined table.

        Args:
            explicit: Drop live columns (and managed keys) the definition
                does not name.
            drop: Drop and recreate an existing table.

        Returns:
            The statements issued; empty when the table is already in sync.

        Any failure resets the session before the error propagates.
        """
        changes: List[SchemaChange] = []
        try:
            table = self.definition.table_name
            if not table:
                raise TableDefinitionError("You must specify a table before calling synchronize()")
            if not self.definition.columns():
                raise TableDefinitionError(
                    "You must provide at least one column before calling synchronize()",
                    {"table": table},
                )

            exists = await self.inspector.table_exists()

            if exists and drop:
                dropped = await self.drop()
                if dropped is not None:
                    changes.append(dropped)
                exists = False

            if exists:
                change = await self._modify(explicit)
                if change is not None:
                    changes.append(change)
            else:
                changes.append(await self._create())

        except Exception as e:
            logger.error(f"Failed to synchronize {self.definition.table_name or 'table'}: {e}")
            self.reset()
            raise

        if changes and not self.capture_only:
            self.inspector.invalidate()
        return changes

    async def _create(self) -> SchemaChange:
        table = self._qualified_table()
        logger.info(f"Creating table {table}")
        sql = self.driver.create_table(self.definition, table)
        return await self.query(sql, ChangeType.CREATE_TABLE, f"Create table {table}")

    async def plan(self, explicit: bool = False) -> TableDiff:
        """Compare the definition with the live table without issuing anything."""
        return compare(
            self._qualified_table(),
            self.definition.columns(),
            await self.inspector.existing_columns(),
            await self.inspector.existing_indexes(),
            explicit=explicit,
            same_type=self.driver.same_type,
        )

    async def _modify(self, explicit: bool) -> Optional[SchemaChange]:
        table = self._qualified_table()
        diff = await self.plan(explicit)
        if diff.is_empty:
            logger.debug(f"Table {table} is up to date")
            return None

        sql = self.driver.modify_table(diff, table)
        if not sql:
            return None

        summary = ", ".join(f"{k}={v}" for k, v in diff.summary().items() if v)
        logger.info(f"Modifying table {table}: {summary}")
        return await self.query(sql, ChangeType.ALTER_TABLE, f"Modify table {table} ({summary})")

    async def get(self, table_name: Optional[str] = None) -> Dict[str, ColumnDescriptor]:
        """
        Load the live columns of a table into the definition.

        The loaded columns can be edited and synchronized again. A table that
        does not exist loads no columns.
        """
        if table_name:
            self.table(table_name)
        existing = await self.inspector.existing_columns()
        self.definition.set_columns({name: column.copy() for name, column in existing.items()})
        return self.definition.columns()

    async def drop(self) -> Optional[SchemaChange]:
        """Drop the current table if it exists."""
        if not await self.inspector.table_exists():
            logger.debug(f"Table {self._qualified_table()} does not exist; nothing to drop")
            return None

        table = self._qualified_table()
        change = await self.query(
            self.driver.drop_table(table), ChangeType.DROP_TABLE, f"Drop table {table}"
        )
        self._observed_changed(change)
        return change

    async def drop_column(self, name: str) -> SchemaChange:
        table = self._qualified_table()
        change = await self.query(
            self.driver.drop_column(table, name),
            ChangeType.DROP_COLUMN,
            f"Drop column {name} from {table}",
        )
        self._observed_changed(change)
        return change

    async def rename_column(self, old_name: str, new_name: str) -> SchemaChange:
        """Rename a live column of the current table."""
        table = self._qualified_table()
        if not await self.inspector.column_exists(old_name):
            raise SynchronizationError(
                f"The column {old_name} does not exist", {"table": table}
            )
        if await self.inspector.column_exists(new_name):
            raise SynchronizationError(
                f"The column {new_name} already exists", {"table": table}
            )

        change = await self.query(
            self.driver.rename_column(table, old_name, new_name),
            ChangeType.RENAME_COLUMN,
            f"Rename column {old_name} to {new_name} on {table}",
        )
        self._observed_changed(change)
        return change

    async def rename_table(
        self, old_name: str, new_name: str, use_prefix: bool = False
    ) -> SchemaChange:
        """Rename a table; ``use_prefix`` applies the table prefix to both names."""
        if use_prefix:
            old_name = self.config.prefixed(old_name)
            new_name = self.config.prefixed(new_name)

        change = await self.query(
            self.driver.rename_table(old_name, new_name),
            ChangeType.RENAME_TABLE,
            f"Rename table {old_name} to {new_name}",
        )
        self._observed_changed(change)
        return change

    async def view(self, name: str, query: str) -> SchemaChange:
        """Create or replace a view over ``query``."""
        view_name = self.config.prefixed(name)
        return await self.query(
            self.driver.create_view(view_name, query),
            ChangeType.CREATE_VIEW,
            f"Create view {view_name}",
        )

    async def engine(self, name: str) -> SchemaChange:
        """Change the storage engine of the current table."""
        table = self._qualified_table()
        return await self.query(
            self.driver.set_engine(table, name),
            ChangeType.SET_ENGINE,
            f"Set engine of {table} to {name}",
        )
