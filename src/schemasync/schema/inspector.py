"""
Cached view of the live schema of the table being synchronized.
"""

import logging
from typing import Dict, Optional

from ..config import StructureConfig
from ..database.introspection import IndexInfo, SchemaIntrospector
from .column import ColumnDescriptor, find_column


logger = logging.getLogger(__name__)


class ExistingSchemaInspector:
    """
    Observed state of one table.

    The existence flag is tri-state: ``None`` until queried, then the
    boolean answer. Existence, columns and indexes are cached for the bound
    table until ``invalidate()`` or ``reset()``.
    """

    def __init__(self, introspector: SchemaIntrospector, config: Optional[StructureConfig] = None):
        self.introspector = introspector
        self.config = config or StructureConfig()
        self.reset()

    def bind(self, table_name: str) -> None:
        """Point the inspector at a table; a different table drops the caches."""
        if table_name != self._table_name:
            self.invalidate()
        self._table_name = table_name

    @property
    def table_name(self) -> str:
        return self._table_name

    async def table_exists(self, table_name: Optional[str] = None) -> bool:
        """
        Check whether a table exists.

        Only the answer for the bound table is cached; asking about another
        table always queries.
        """
        if self._table_exists is not None and table_name is None:
            return self._table_exists

        if table_name is None:
            table_name = self._table_name

        if table_name:
            tables = await self.introspector.fetch_tables(
                self.config.prefixed(table_name), self.config.schema_name
            )
            result = len(tables) > 0
        else:
            result = False

        if table_name == self._table_name:
            self._table_exists = result
        logger.debug(f"Table {table_name} exists: {result}")
        return result

    async def existing_columns(self) -> Dict[str, ColumnDescriptor]:
        if self._existing_columns is None:
            if await self.table_exists():
                self._existing_columns = await self.introspector.fetch_table_schema(
                    self.config.prefixed(self._table_name), self.config.schema_name
                )
            else:
                self._existing_columns = {}
        return self._existing_columns

    async def existing_indexes(self) -> Dict[str, IndexInfo]:
        if self._existing_indexes is None:
            if await self.table_exists():
                self._existing_indexes = await self.introspector.fetch_table_indexes(
                    self.config.prefixed(self._table_name), self.config.schema_name
                )
            else:
                self._existing_indexes = {}
        return self._existing_indexes

    async def column_exists(self, name: str) -> bool:
        """Case-insensitive check against the live columns."""
        return find_column(await self.existing_columns(), name) is not None

    def invalidate(self) -> None:
        """Forget everything observed about the bound table."""
        self._table_exists: Optional[bool] = None
        self._existing_columns: Optional[Dict[str, ColumnDescriptor]] = None
        self._existing_indexes: Optional[Dict[str, IndexInfo]] = None

    def reset(self) -> "ExistingSchemaInspector":
        self._table_name = ""
        self.invalidate()
        return self
