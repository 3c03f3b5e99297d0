"""
Database schema introspection for schemasync.

Reads table existence, column definitions and managed keys from a
PostgreSQL catalog and translates them into the same ColumnDescriptor
model that table definitions use.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import asyncpg

from .connection import ConnectionPool
from ..exceptions import ExecutionError
from ..schema.column import ColumnDescriptor, same_name
from ..schema.keys import KeyAssignment, KeyKind


logger = logging.getLogger(__name__)


# information_schema data types mapped back onto catalog type names.
_TYPE_ALIASES = {
    "integer": "int",
    "int4": "int",
    "int2": "smallint",
    "int8": "bigint",
    "real": "float",
    "float4": "float",
    "double precision": "double",
    "float8": "double",
    "numeric": "decimal",
    "character varying": "varchar",
    "character": "char",
    "bpchar": "char",
    "timestamp without time zone": "datetime",
    "timestamp": "datetime",
    "bytea": "blob",
    "inet": "ipaddress",
}

INDEX_PREFIXES = {
    "IX_": KeyKind.INDEX.value,
    "UX_": KeyKind.UNIQUE.value,
    "TX_": KeyKind.FULLTEXT.value,
}

_QUOTED_DEFAULT = re.compile(r"^'((?:[^']|'')*)'::[\w\s\".]+(?:\[\])?$")
_NUMERIC_DEFAULT = re.compile(r"^\(?(-?\d+(?:\.\d+)?)\)?(?:::[\w\s]+)?$")
_CHECK_VALUE = re.compile(r"'((?:[^']|'')*)'")


def index_name(kind: str, table: str, group: str) -> str:
    """Name of a managed index."""
    for prefix, prefix_kind in INDEX_PREFIXES.items():
        if prefix_kind == kind:
            return f"{prefix}{table}_{group}"
    raise ValueError(f"No index naming convention for key kind '{kind}'")


def enum_constraint_name(table: str, column: str) -> str:
    """Name of the check constraint holding an enum column's values."""
    return f"CK_{table}_{column}"


def normalize_type(data_type: str, udt_name: Optional[str] = None) -> str:
    """Translate an information_schema data type to a catalog type name."""
    data_type = (data_type or "").lower()
    if data_type in ("user-defined", "array") and udt_name:
        return udt_name.lower()
    return _TYPE_ALIASES.get(data_type, data_type)


def parse_default(raw: Optional[str]) -> Optional[str]:
    """Strip casts and quoting from a column_default expression."""
    if raw is None:
        return None
    text = raw.strip()
    if text.upper() == "NULL" or text.upper().startswith("NULL::"):
        return None

    match = _QUOTED_DEFAULT.match(text)
    if match:
        return match.group(1).replace("''", "'")

    match = _NUMERIC_DEFAULT.match(text)
    if match:
        return match.group(1)

    return text


def parse_check_values(definition: str) -> List[str]:
    """Extract the literal values of an ``IN``/``= ANY`` check constraint."""
    return [value.replace("''", "'") for value in _CHECK_VALUE.findall(definition)]


@dataclass
class IndexInfo:
    """Information about a database index."""

    name: str
    columns: List[str]
    is_unique: bool = False
    is_primary: bool = False
    index_type: str = "btree"
    kind: Optional[str] = None
    group: Optional[str] = None

    @property
    def is_managed(self) -> bool:
        """Whether the index follows the naming convention of this package."""
        return self.is_primary or self.kind is not None

    @property
    def key(self) -> Optional[Tuple[str, str]]:
        if self.is_primary:
            return (KeyKind.PRIMARY.value, "primary")
        if self.kind:
            return (self.kind, self.group)
        return None

    def tag_for(self, column: str) -> Optional[str]:
        """The key tag a member column would declare to join this index."""
        if self.is_primary:
            return KeyKind.PRIMARY.value
        if not self.kind:
            return None
        if len(self.columns) == 1 and same_name(self.group or "", column):
            return self.kind
        return f"{self.kind}.{self.group}"


def classify_index(
    name: str,
    table: str,
    columns: List[str],
    is_unique: bool = False,
    is_primary: bool = False,
    index_type: str = "btree",
) -> IndexInfo:
    """Build IndexInfo, recognizing the managed naming convention."""
    info = IndexInfo(
        name=name,
        columns=list(columns),
        is_unique=is_unique,
        is_primary=is_primary,
        index_type=index_type,
    )
    if is_primary:
        return info

    for prefix, kind in INDEX_PREFIXES.items():
        stem = f"{prefix}{table}_"
        if name.lower().startswith(stem.lower()) and len(name) > len(stem):
            info.kind = kind
            info.group = name[len(stem):]
            break
    return info


class SchemaIntrospector:
    """Database schema introspection utilities."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    async def fetch_tables(self, table_name: str, schema: str = "public") -> List[str]:
        """Get the names of tables matching ``table_name`` exactly."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1 AND table_name = $2
            AND table_type IN ('BASE TABLE', 'VIEW')
        """

        try:
            rows = await self.pool.fetch(query, schema, table_name)
            return [row["table_name"] for row in rows]
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Error checking table existence for {schema}.{table_name}: {e}")
            raise ExecutionError(f"Failed to check table existence: {e}", cause=e) from e

    async def list_tables(self, schema: str = "public") -> List[str]:
        """List all base tables in a schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1 AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """

        try:
            rows = await self.pool.fetch(query, schema)
            return [row["table_name"] for row in rows]
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Error listing tables in {schema}: {e}")
            raise ExecutionError(f"Failed to list tables: {e}", cause=e) from e

    async def fetch_table_schema(
        self, table_name: str, schema: str = "public"
    ) -> Dict[str, ColumnDescriptor]:
        """Get the column definitions of a table, keyed by column name."""
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.udt_name,
                c.is_nullable,
                c.column_default,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.is_identity
            FROM information_schema.columns c
            WHERE c.table_schema = $1 AND c.table_name = $2
            ORDER BY c.ordinal_position
        """

        try:
            rows = await self.pool.fetch(query, schema, table_name)
            checks = await self._fetch_check_constraints(table_name, schema)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Error getting columns for {schema}.{table_name}: {e}")
            raise ExecutionError(f"Failed to get columns: {e}", cause=e) from e

        columns: Dict[str, ColumnDescriptor] = {}
        for row in rows:
            column = self._column_from_row(row)
            enum_check = checks.get(enum_constraint_name(table_name, column.name).lower())
            if enum_check is not None:
                column.type = "enum"
                column.length = None
                column.enum_values = parse_check_values(enum_check)
            columns[column.name] = column

        indexes = await self.fetch_table_indexes(table_name, schema)
        self._assign_keys(columns, indexes.values())

        logger.debug(f"Fetched {len(columns)} columns for {schema}.{table_name}")
        return columns

    async def fetch_table_indexes(
        self, table_name: str, schema: str = "public"
    ) -> Dict[str, IndexInfo]:
        """Get all indexes of a table keyed by index name."""
        query = """
            SELECT
                ic.relname AS index_name,
                ix.indisunique AS is_unique,
                ix.indisprimary AS is_primary,
                am.amname AS index_type,
                ARRAY(
                    SELECT a.attname
                    FROM pg_attribute a
                    WHERE a.attrelid = ix.indrelid
                    AND a.attnum > 0
                    AND NOT a.attisdropped
                    AND (
                        a.attnum = ANY(ix.indkey::smallint[])
                        OR a.attnum IN (
                            SELECT d.refobjsubid
                            FROM pg_depend d
                            WHERE d.classid = 'pg_class'::regclass
                            AND d.objid = ix.indexrelid
                            AND d.refclassid = 'pg_class'::regclass
                            AND d.refobjid = ix.indrelid
                        )
                    )
                    ORDER BY array_position(ix.indkey::smallint[], a.attnum) NULLS LAST, a.attnum
                ) AS columns
            FROM pg_index ix
            JOIN pg_class ic ON ic.oid = ix.indexrelid
            JOIN pg_class tc ON tc.oid = ix.indrelid
            JOIN pg_namespace n ON n.oid = tc.relnamespace
            JOIN pg_am am ON am.oid = ic.relam
            WHERE n.nspname = $1 AND tc.relname = $2
            ORDER BY ic.relname
        """

        try:
            rows = await self.pool.fetch(query, schema, table_name)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.error(f"Error getting indexes for {schema}.{table_name}: {e}")
            raise ExecutionError(f"Failed to get indexes: {e}", cause=e) from e

        indexes = {}
        for row in rows:
            info = classify_index(
                name=row["index_name"],
                table=table_name,
                columns=list(row["columns"]),
                is_unique=row["is_unique"],
                is_primary=row["is_primary"],
                index_type=row["index_type"],
            )
            indexes[info.name] = info
        return indexes

    async def _fetch_check_constraints(self, table_name: str, schema: str) -> Dict[str, str]:
        query = """
            SELECT con.conname, pg_get_constraintdef(con.oid) AS definition
            FROM pg_constraint con
            JOIN pg_class c ON c.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = $1 AND c.relname = $2 AND con.contype = 'c'
        """
        rows = await self.pool.fetch(query, schema, table_name)
        return {row["conname"].lower(): row["definition"] for row in rows}

    @staticmethod
    def _column_from_row(row) -> ColumnDescriptor:
        type_name = normalize_type(row["data_type"], row["udt_name"])
        raw_default = row["column_default"]
        auto_increment = row["is_identity"] == "YES" or (
            raw_default is not None and raw_default.startswith("nextval(")
        )

        length = precision = None
        if type_name in ("varchar", "char", "varbinary"):
            length = row["character_maximum_length"]
        elif type_name == "decimal":
            length = row["numeric_precision"]
            precision = row["numeric_scale"]

        return ColumnDescriptor(
            name=row["column_name"],
            type=type_name,
            length=length,
            precision=precision,
            allow_null=row["is_nullable"] == "YES",
            default=None if auto_increment else parse_default(raw_default),
            auto_increment=auto_increment,
        )

    @staticmethod
    def _assign_keys(columns: Dict[str, ColumnDescriptor], indexes) -> None:
        tags: Dict[str, List[str]] = {name: [] for name in columns}
        for index in indexes:
            if not index.is_managed:
                continue
            for column_name in index.columns:
                tag = index.tag_for(column_name)
                if column_name in tags and tag and tag not in tags[column_name]:
                    tags[column_name].append(tag)

        for name, column_tags in tags.items():
            columns[name].key_type = KeyAssignment(tuple(column_tags))
