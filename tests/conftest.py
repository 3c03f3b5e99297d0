"""
Pytest configuration and shared fixtures for schemasync tests.
"""

from typing import Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from schemasync.config import ConnectionConfig, StructureConfig
from schemasync.database.connection import ConnectionPool
from schemasync.database.introspection import SchemaIntrospector, classify_index, index_name
from schemasync.schema.column import ColumnDescriptor
from schemasync.schema.definition import collect_key_groups
from schemasync.schema.structure import DatabaseStructure


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Connection configuration for a local test database."""
    return ConnectionConfig(
        host="localhost",
        port=5432,
        database="test",
        user="user",
        password="pass",
    )


@pytest.fixture
def structure_config() -> StructureConfig:
    """Structure defaults without a table prefix."""
    return StructureConfig()


@pytest.fixture
def sample_config_yaml() -> str:
    """A complete configuration file."""
    return """
debug: false
database:
  host: localhost
  port: 5432
  database: app
  user: app
  password: ${TEST_DB_PASSWORD}
structure:
  table_prefix: GDN_
  character_encoding: utf8mb4
tables:
  - name: User
    primary_key:
      name: UserID
    columns:
      - name: Name
        type: varchar(50)
        null_default: false
        key: unique
      - name: Email
        type: varchar(100)
        null_default: true
        key: index
      - name: Status
        type: [active, banned]
        null_default: active
  - name: Comment
    explicit: true
    primary_key:
      name: CommentID
      type: bigint
    columns:
      - name: Body
        type: text
        key: fulltext
"""


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_pool() -> MagicMock:
    """Connection pool that records statements without a database."""
    pool = MagicMock(spec=ConnectionPool)
    pool.captured_sql = []
    pool.execute = AsyncMock(return_value="OK")
    pool.fetch = AsyncMock(return_value=[])
    pool.fetchval = AsyncMock(return_value=None)
    return pool


@pytest.fixture
def mock_introspector() -> MagicMock:
    """Introspector reporting an empty schema until told otherwise."""
    introspector = MagicMock(spec=SchemaIntrospector)
    introspector.fetch_tables = AsyncMock(return_value=[])
    introspector.fetch_table_schema = AsyncMock(return_value={})
    introspector.fetch_table_indexes = AsyncMock(return_value={})
    return introspector


@pytest.fixture
def make_live_table(mock_introspector):
    """Make the mocked introspector report a table as PostgreSQL would."""

    def _make(table: str, columns: Dict[str, ColumnDescriptor]) -> None:
        mock_introspector.fetch_tables.return_value = [table]
        mock_introspector.fetch_table_schema.return_value = {
            name: column.copy() for name, column in columns.items()
        }

        indexes = {}
        for (kind, group), members in collect_key_groups(columns).items():
            if kind == "primary":
                info = classify_index(
                    f"{table}_pkey", table, members, is_unique=True, is_primary=True
                )
            else:
                info = classify_index(
                    index_name(kind, table, group), table, members, is_unique=kind == "unique"
                )
            indexes[info.name] = info
        mock_introspector.fetch_table_indexes.return_value = indexes

    return _make


@pytest.fixture
def structure(mock_pool, mock_introspector, structure_config) -> DatabaseStructure:
    """Structure session on mocked collaborators."""
    return DatabaseStructure(mock_pool, structure_config, introspector=mock_introspector)


@pytest.fixture
def capture_structure(mock_pool, mock_introspector) -> DatabaseStructure:
    """Structure session in capture mode."""
    return DatabaseStructure(
        mock_pool, StructureConfig(capture_only=True), introspector=mock_introspector
    )
