"""
Engine driver interface.

A driver turns the decisions of the synchronizer into engine-specific SQL.
Every capability is abstract: an engine that cannot perform one raises
UnsupportedOperationError from its own implementation.
"""

from abc import ABC, abstractmethod

from ..column import ColumnDescriptor
from ..definition import TableDefinition
from ..diff import TableDiff, default_same_type


class StructureDriver(ABC):
    """Renders structure statements for one database engine."""

    name = "generic"

    def same_type(self, target: ColumnDescriptor, existing: ColumnDescriptor) -> bool:
        """Whether two column types are stored identically by this engine."""
        return default_same_type(target, existing)

    @abstractmethod
    def create_table(self, definition: TableDefinition, table: str) -> str:
        """Statement text creating ``table`` with every defined column and key."""

    @abstractmethod
    def modify_table(self, diff: TableDiff, table: str) -> str:
        """Statement text applying ``diff``; empty when there is nothing to do."""

    @abstractmethod
    def drop_table(self, table: str) -> str:
        pass

    @abstractmethod
    def drop_column(self, table: str, column: str) -> str:
        pass

    @abstractmethod
    def rename_column(self, table: str, old_name: str, new_name: str) -> str:
        pass

    @abstractmethod
    def rename_table(self, old_name: str, new_name: str) -> str:
        pass

    @abstractmethod
    def create_view(self, name: str, query: str) -> str:
        pass

    @abstractmethod
    def set_engine(self, table: str, engine: str) -> str:
        """Statement changing the storage engine of ``table``."""
