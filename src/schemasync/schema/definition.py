"""
Table definition builder.

Accumulates the target shape of one table in memory before it is
synchronized with the database.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..config import StructureConfig
from .column import ColumnDescriptor, define_column, find_column
from .keys import KeyAssignment, RawKeyType


logger = logging.getLogger(__name__)


class TableDefinition:
    """Mutable working set for the table being defined."""

    def __init__(self, config: Optional[StructureConfig] = None):
        self.config = config or StructureConfig()
        self.reset()

    def table(self, name: Optional[str] = None, encoding: Optional[str] = None):
        """
        Get the table name, or start defining a table.

        Setting a table keeps the columns defined so far; only ``reset()``
        clears them. Without an explicit encoding the configured default
        character encoding applies.
        """
        if not name:
            return self._table_name

        self._table_name = name
        self._character_encoding = encoding or self.config.character_encoding
        return self

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def character_encoding(self) -> str:
        return self._character_encoding

    def column(
        self,
        name: str,
        type_spec: Any = "int",
        null_default: Any = True,
        key_type: RawKeyType = None,
    ) -> "TableDefinition":
        """
        Define a column, replacing any earlier definition with the same name.

        Args:
            name: Column name.
            type_spec: Type name such as ``"varchar(100)"`` or ``"uint"``, a
                list of enum values, or a ``[type_name, values]`` pair.
            null_default: ``True`` for nullable, ``False`` for not null, a
                ``{"Null": ..., "Default": ...}`` mapping, or a default value.
            key_type: Key tag or list of tags (``primary``, ``key``,
                ``index``, ``unique``, ``fulltext``, optionally ``.group``).
        """
        self._store(define_column(name, type_spec, null_default, key_type))
        return self

    def primary_key(self, name: str, type_spec: Any = "int") -> "TableDefinition":
        """Define an auto-incrementing primary key column."""
        column = define_column(name, type_spec, False, "primary")
        column.auto_increment = True
        self._store(column)
        return self

    def add(self, column: ColumnDescriptor) -> "TableDefinition":
        """Define a column from a ready-made descriptor."""
        self._store(column)
        return self

    def _store(self, column: ColumnDescriptor) -> None:
        existing = find_column(self._columns, column.name)
        if existing is None:
            self._columns[column.name] = column
            return

        logger.debug(f"Replacing definition of column {existing.name} on {self._table_name}")
        # One entry per case-insensitive name, kept at its original position.
        self._columns = {
            (column.name if name == existing.name else name): (
                column if name == existing.name else current
            )
            for name, current in self._columns.items()
        }

    def columns(
        self, name: Optional[str] = None
    ) -> Union[Dict[str, ColumnDescriptor], Optional[ColumnDescriptor]]:
        """All target columns, or the one named (case-insensitive)."""
        if name:
            return find_column(self._columns, name)
        return self._columns

    def has_column(self, name: str) -> bool:
        return find_column(self._columns, name) is not None

    def column_type_string(self, column: Union[str, ColumnDescriptor]) -> Any:
        if isinstance(column, str):
            column = self._columns[column]
        return column.type_string()

    def set_columns(self, columns: Dict[str, ColumnDescriptor]) -> None:
        self._columns = dict(columns)

    @property
    def primary_columns(self) -> Dict[str, ColumnDescriptor]:
        return {name: c for name, c in self._columns.items() if c.is_primary}

    def key_groups(self) -> Dict[tuple, list]:
        """Target keys as ``(kind, group) -> [column names]`` in definition order."""
        return collect_key_groups(self._columns)

    def reset(self) -> "TableDefinition":
        self._table_name = ""
        self._character_encoding = ""
        self._columns: Dict[str, ColumnDescriptor] = {}
        return self


def collect_key_groups(columns: Dict[str, ColumnDescriptor]) -> Dict[tuple, list]:
    groups: Dict[tuple, list] = {}
    for name, column in columns.items():
        key_type = column.key_type or KeyAssignment()
        for pair in key_type.groups(name):
            groups.setdefault(pair, []).append(name)
    return groups
