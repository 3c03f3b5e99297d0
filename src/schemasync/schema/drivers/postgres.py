"""
PostgreSQL structure driver.

Renders CREATE/ALTER statements for PostgreSQL. Several statements that
belong to one operation are joined into a single text, which asyncpg runs
through the simple query protocol.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from ...database.introspection import enum_constraint_name, index_name
from ...exceptions import UnsupportedOperationError
from ..column import ColumnDescriptor
from ..definition import TableDefinition
from ..diff import ColumnField, KeyChange, TableDiff
from ..keys import KeyKind
from ..types import render_type_string
from .base import StructureDriver


logger = logging.getLogger(__name__)


_NATIVE_TYPES = {
    "tinyint": "smallint",
    "smallint": "smallint",
    "mediumint": "integer",
    "int": "integer",
    "integer": "integer",
    "bigint": "bigint",
    "float": "real",
    "double": "double precision",
    "decimal": "numeric",
    "numeric": "numeric",
    "varchar": "varchar",
    "character varying": "varchar",
    "char": "char",
    "character": "char",
    "text": "text",
    "mediumtext": "text",
    "datetime": "timestamp",
    "date": "date",
    "varbinary": "bytea",
    "tinyblob": "bytea",
    "blob": "bytea",
    "mediumblob": "bytea",
    "longblob": "bytea",
    "ipaddress": "inet",
    "enum": "text",
    "bool": "boolean",
    "timestamptz": "timestamp with time zone",
}

_LENGTH_TYPES = ("varchar",)
_IDENTITY_TYPES = ("smallint", "integer", "bigint")


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def _join(statements: Iterable[str]) -> str:
    statements = [s for s in statements if s]
    if not statements:
        return ""
    return ";\n".join(statements) + ";"


class PostgresStructureDriver(StructureDriver):
    """Structure driver for PostgreSQL."""

    name = "postgres"

    def __init__(self, schema: str = "public"):
        self.schema = schema

    def qualified(self, table: str) -> str:
        return f"{quote_identifier(self.schema)}.{quote_identifier(table)}"

    def native_type(self, column: ColumnDescriptor) -> str:
        """PostgreSQL type storing ``column``."""
        type_name = (column.type or "int").lower()
        if type_name == "set":
            raise UnsupportedOperationError(f"set column {column.name}", self.name)

        native = _NATIVE_TYPES.get(type_name)
        if native is None:
            rendered = render_type_string(column)
            return rendered.lower() if isinstance(rendered, str) else "text"

        if native == "numeric" and column.length:
            # PostgreSQL stores numeric(p) as numeric(p,0).
            return f"numeric({column.length},{column.precision or 0})"
        if native == "char":
            return f"char({column.length or 1})"
        if native in _LENGTH_TYPES and column.length:
            return f"{native}({column.length})"
        return native

    def same_type(self, target: ColumnDescriptor, existing: ColumnDescriptor) -> bool:
        return self.native_type(target) == self.native_type(existing)

    def column_definition(self, column: ColumnDescriptor) -> str:
        native = self.native_type(column)
        parts = [quote_identifier(column.name), native]

        if column.unsigned:
            logger.debug(f"PostgreSQL has no unsigned types; {column.name} stored as {native}")

        if column.auto_increment:
            if native in _IDENTITY_TYPES:
                parts.append("GENERATED BY DEFAULT AS IDENTITY")
            else:
                logger.warning(f"Cannot auto-increment {column.name} of type {native}")

        if not column.allow_null or column.is_primary:
            parts.append("NOT NULL")

        if column.default is not None and not column.auto_increment:
            parts.append(f"DEFAULT {quote_literal(column.default)}")

        return " ".join(parts)

    def enum_check(self, table: str, column: ColumnDescriptor) -> Optional[str]:
        """Named check constraint restricting an enum column to its values."""
        if column.type != "enum" or not column.enum_values:
            return None
        values = ", ".join(quote_literal(v) for v in column.enum_values)
        return (
            f"CONSTRAINT {quote_identifier(enum_constraint_name(table, column.name))} "
            f"CHECK ({quote_identifier(column.name)} IN ({values}))"
        )

    def create_index(self, table: str, key: KeyChange) -> str:
        name = quote_identifier(index_name(key.kind, table, key.group))
        columns = [quote_identifier(c) for c in key.columns]

        if key.kind == KeyKind.FULLTEXT.value:
            document = " || ' ' || ".join(f"coalesce({c}::text, '')" for c in columns)
            return (
                f"CREATE INDEX {name} ON {self.qualified(table)} "
                f"USING gin (to_tsvector('simple', {document}))"
            )

        unique = "UNIQUE " if key.kind == KeyKind.UNIQUE.value else ""
        return f"CREATE {unique}INDEX {name} ON {self.qualified(table)} ({', '.join(columns)})"

    def create_table(self, definition: TableDefinition, table: str) -> str:
        columns = definition.columns()
        lines = [self.column_definition(column) for column in columns.values()]

        primary = [name for name, column in columns.items() if column.is_primary]
        if primary:
            lines.append(f"PRIMARY KEY ({', '.join(quote_identifier(c) for c in primary)})")

        for column in columns.values():
            check = self.enum_check(table, column)
            if check:
                lines.append(check)

        if definition.character_encoding:
            logger.debug(
                f"PostgreSQL encodings are per database; ignoring "
                f"{definition.character_encoding} for {table}"
            )

        body = ",\n    ".join(lines)
        statements = [f"CREATE TABLE {self.qualified(table)} (\n    {body}\n)"]

        for (kind, group), members in definition.key_groups().items():
            if kind == KeyKind.PRIMARY.value:
                continue
            statements.append(self.create_index(table, KeyChange(kind, group, members)))

        return _join(statements)

    def modify_table(self, diff: TableDiff, table: str) -> str:
        before: List[str] = []
        actions: List[str] = []
        after: List[str] = []

        for key in diff.keys_dropped:
            if key.is_primary:
                actions.append(f"DROP CONSTRAINT {quote_identifier(key.name)}")
            else:
                before.append(
                    f"DROP INDEX IF EXISTS {quote_identifier(self.schema)}.{quote_identifier(key.name)}"
                )

        for modification in diff.modified:
            if modification.changed(ColumnField.ENUM_VALUES) or (
                modification.existing.type == "enum" and modification.target.type != "enum"
            ):
                constraint = enum_constraint_name(table, modification.name)
                actions.append(f"DROP CONSTRAINT IF EXISTS {quote_identifier(constraint)}")

        for name in diff.dropped:
            actions.append(f"DROP COLUMN {quote_identifier(name)}")

        for column in diff.added:
            actions.append(f"ADD COLUMN {self.column_definition(column)}")
            check = self.enum_check(table, column)
            if check:
                actions.append(f"ADD {check}")

        for modification in diff.modified:
            actions.extend(self._alter_column(table, modification))

        for key in diff.keys_added:
            if key.is_primary:
                columns = ", ".join(quote_identifier(c) for c in key.columns)
                actions.append(f"ADD PRIMARY KEY ({columns})")
            else:
                after.append(self.create_index(table, key))

        statements = list(before)
        if actions:
            statements.append(
                f"ALTER TABLE {self.qualified(table)}\n    " + ",\n    ".join(actions)
            )
        statements.extend(after)
        return _join(statements)

    def _alter_column(self, table: str, modification) -> List[str]:
        target = modification.target
        column = quote_identifier(modification.name)
        actions = []

        if any(
            modification.changed(f)
            for f in (ColumnField.TYPE, ColumnField.LENGTH, ColumnField.PRECISION)
        ):
            native = self.native_type(target)
            actions.append(f"ALTER COLUMN {column} TYPE {native} USING {column}::{native}")

        if modification.changed(ColumnField.NULLABILITY):
            if target.allow_null and not target.is_primary:
                actions.append(f"ALTER COLUMN {column} DROP NOT NULL")
            else:
                actions.append(f"ALTER COLUMN {column} SET NOT NULL")

        if modification.changed(ColumnField.DEFAULT):
            if target.default is None:
                actions.append(f"ALTER COLUMN {column} DROP DEFAULT")
            else:
                actions.append(f"ALTER COLUMN {column} SET DEFAULT {quote_literal(target.default)}")

        if modification.changed(ColumnField.AUTO_INCREMENT):
            if modification.existing.default is not None:
                actions.append(f"ALTER COLUMN {column} DROP DEFAULT")
            actions.append(f"ALTER COLUMN {column} ADD GENERATED BY DEFAULT AS IDENTITY")

        if modification.changed(ColumnField.ENUM_VALUES) or (
            target.type == "enum" and modification.existing.type != "enum"
        ):
            check = self.enum_check(table, target.copy(name=modification.name))
            if check:
                actions.append(f"ADD {check}")

        return actions

    def drop_table(self, table: str) -> str:
        return f"DROP TABLE {self.qualified(table)}"

    def drop_column(self, table: str, column: str) -> str:
        return f"ALTER TABLE {self.qualified(table)} DROP COLUMN {quote_identifier(column)}"

    def rename_column(self, table: str, old_name: str, new_name: str) -> str:
        return (
            f"ALTER TABLE {self.qualified(table)} "
            f"RENAME COLUMN {quote_identifier(old_name)} TO {quote_identifier(new_name)}"
        )

    def rename_table(self, old_name: str, new_name: str) -> str:
        return f"ALTER TABLE {self.qualified(old_name)} RENAME TO {quote_identifier(new_name)}"

    def create_view(self, name: str, query: str) -> str:
        return f"CREATE OR REPLACE VIEW {self.qualified(name)} AS {query}"

    def set_engine(self, table: str, engine: str) -> str:
        raise UnsupportedOperationError(f"storage engine {engine}", self.name)
