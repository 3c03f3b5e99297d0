"""
Tests for schemasync.database.introspection module.

Tests the catalog translation helpers, IndexInfo and the
SchemaIntrospector class against a mocked connection pool.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

import asyncpg

from schemasync.database.connection import ConnectionPool
from schemasync.database.introspection import (
    IndexInfo,
    SchemaIntrospector,
    classify_index,
    enum_constraint_name,
    index_name,
    normalize_type,
    parse_check_values,
    parse_default,
)
from schemasync.exceptions import ExecutionError


class TestNormalizeType:
    """Test information_schema type translation."""

    @pytest.mark.parametrize(
        "data_type,expected",
        [
            ("integer", "int"),
            ("smallint", "smallint"),
            ("bigint", "bigint"),
            ("real", "float"),
            ("double precision", "double"),
            ("numeric", "decimal"),
            ("character varying", "varchar"),
            ("character", "char"),
            ("text", "text"),
            ("timestamp without time zone", "datetime"),
            ("date", "date"),
            ("bytea", "blob"),
            ("inet", "ipaddress"),
            ("boolean", "boolean"),
        ],
    )
    def test_aliases(self, data_type, expected):
        assert normalize_type(data_type) == expected

    def test_user_defined_uses_udt_name(self):
        assert normalize_type("USER-DEFINED", "citext") == "citext"


class TestParseDefault:
    """Test column_default parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, None),
            ("NULL", None),
            ("NULL::character varying", None),
            ("'active'::text", "active"),
            ("'abc'::character varying", "abc"),
            ("'it''s'::text", "it's"),
            ("''::text", ""),
            ("0", "0"),
            ("(-1)", "-1"),
            ("'1.50'::numeric", "1.50"),
            ("1.5", "1.5"),
            ("now()", "now()"),
        ],
    )
    def test_parse(self, raw, expected):
        assert parse_default(raw) == expected


def test_parse_check_values():
    definition = "CHECK ((\"Status\" = ANY (ARRAY['active'::text, 'it''s'::text])))"
    assert parse_check_values(definition) == ["active", "it's"]


def test_naming_conventions():
    assert index_name("index", "User", "Email") == "IX_User_Email"
    assert index_name("unique", "User", "Name") == "UX_User_Name"
    assert index_name("fulltext", "User", "Bio") == "TX_User_Bio"
    assert enum_constraint_name("User", "Status") == "CK_User_Status"
    with pytest.raises(ValueError):
        index_name("primary", "User", "primary")


class TestIndexInfo:
    """Test IndexInfo classification."""

    def test_primary(self):
        info = classify_index("User_pkey", "User", ["UserID"], is_unique=True, is_primary=True)
        assert info.is_managed
        assert info.key == ("primary", "primary")
        assert info.tag_for("UserID") == "primary"

    def test_managed_unique(self):
        info = classify_index("UX_User_Name", "User", ["Name"], is_unique=True)
        assert info.kind == "unique"
        assert info.group == "Name"
        assert info.key == ("unique", "Name")
        assert info.tag_for("Name") == "unique"
        assert info.tag_for("name") == "unique"

    def test_grouped_index(self):
        info = classify_index("IX_User_Pair", "User", ["A", "B"])
        assert info.key == ("index", "Pair")
        assert info.tag_for("A") == "index.Pair"

    def test_prefix_match_is_case_insensitive(self):
        info = classify_index("ix_user_Email", "User", ["Email"])
        assert info.key == ("index", "Email")

    def test_table_name_with_prefix(self):
        info = classify_index("TX_GDN_Comment_Body", "GDN_Comment", ["Body"])
        assert info.key == ("fulltext", "Body")

    def test_unmanaged(self):
        info = classify_index("custom_idx", "User", ["Name"])
        assert not info.is_managed
        assert info.key is None
        assert info.tag_for("Name") is None

    def test_other_table_is_unmanaged(self):
        assert classify_index("IX_Other_Name", "User", ["Name"]).key is None

    def test_defaults(self):
        info = IndexInfo(name="idx", columns=["a"])
        assert info.index_type == "btree"
        assert info.is_unique is False


class TestSchemaIntrospector:
    """Test SchemaIntrospector against a mocked pool."""

    @pytest.fixture
    def mock_pool(self):
        pool = MagicMock(spec=ConnectionPool)
        pool.fetch = AsyncMock(return_value=[])
        return pool

    @pytest.fixture
    def introspector(self, mock_pool):
        return SchemaIntrospector(mock_pool)

    @pytest.mark.asyncio
    async def test_fetch_tables(self, introspector, mock_pool):
        mock_pool.fetch.return_value = [{"table_name": "User"}]

        assert await introspector.fetch_tables("User") == ["User"]

        args = mock_pool.fetch.call_args[0]
        assert "information_schema.tables" in args[0]
        assert args[1:] == ("public", "User")

    @pytest.mark.asyncio
    async def test_fetch_tables_missing(self, introspector, mock_pool):
        assert await introspector.fetch_tables("Missing", "app") == []
        assert mock_pool.fetch.call_args[0][1:] == ("app", "Missing")

    @pytest.mark.asyncio
    async def test_fetch_tables_error(self, introspector, mock_pool):
        mock_pool.fetch.side_effect = asyncpg.InterfaceError("connection closed")

        with pytest.raises(ExecutionError):
            await introspector.fetch_tables("User")

    @pytest.mark.asyncio
    async def test_list_tables(self, introspector, mock_pool):
        mock_pool.fetch.return_value = [{"table_name": "Comment"}, {"table_name": "User"}]
        assert await introspector.list_tables() == ["Comment", "User"]

    @pytest.mark.asyncio
    async def test_fetch_table_indexes(self, introspector, mock_pool):
        mock_pool.fetch.return_value = [
            {
                "index_name": "User_pkey",
                "is_unique": True,
                "is_primary": True,
                "index_type": "btree",
                "columns": ["UserID"],
            },
            {
                "index_name": "TX_User_Bio",
                "is_unique": False,
                "is_primary": False,
                "index_type": "gin",
                "columns": ["Bio"],
            },
        ]

        indexes = await introspector.fetch_table_indexes("User")

        assert list(indexes) == ["User_pkey", "TX_User_Bio"]
        assert indexes["User_pkey"].is_primary
        assert indexes["TX_User_Bio"].key == ("fulltext", "Bio")
        assert indexes["TX_User_Bio"].index_type == "gin"

    @pytest.mark.asyncio
    async def test_fetch_table_schema(self, introspector, mock_pool):
        columns_rows = [
            {
                "column_name": "UserID",
                "data_type": "integer",
                "udt_name": "int4",
                "is_nullable": "NO",
                "column_default": None,
                "character_maximum_length": None,
                "numeric_precision": 32,
                "numeric_scale": 0,
                "is_identity": "YES",
            },
            {
                "column_name": "Name",
                "data_type": "character varying",
                "udt_name": "varchar",
                "is_nullable": "NO",
                "column_default": None,
                "character_maximum_length": 50,
                "numeric_precision": None,
                "numeric_scale": None,
                "is_identity": "NO",
            },
            {
                "column_name": "Status",
                "data_type": "text",
                "udt_name": "text",
                "is_nullable": "NO",
                "column_default": "'active'::text",
                "character_maximum_length": None,
                "numeric_precision": None,
                "numeric_scale": None,
                "is_identity": "NO",
            },
            {
                "column_name": "Amount",
                "data_type": "numeric",
                "udt_name": "numeric",
                "is_nullable": "YES",
                "column_default": "0",
                "character_maximum_length": None,
                "numeric_precision": 10,
                "numeric_scale": 2,
                "is_identity": "NO",
            },
            {
                "column_name": "LegacyID",
                "data_type": "integer",
                "udt_name": "int4",
                "is_nullable": "NO",
                "column_default": "nextval('legacy_seq'::regclass)",
                "character_maximum_length": None,
                "numeric_precision": 32,
                "numeric_scale": 0,
                "is_identity": "NO",
            },
        ]
        check_rows = [
            {
                "conname": "CK_User_Status",
                "definition": "CHECK ((\"Status\" = ANY (ARRAY['active'::text, 'banned'::text])))",
            }
        ]
        index_rows = [
            {
                "index_name": "User_pkey",
                "is_unique": True,
                "is_primary": True,
                "index_type": "btree",
                "columns": ["UserID"],
            },
            {
                "index_name": "UX_User_Name",
                "is_unique": True,
                "is_primary": False,
                "index_type": "btree",
                "columns": ["Name"],
            },
            {
                "index_name": "IX_User_Pair",
                "is_unique": False,
                "is_primary": False,
                "index_type": "btree",
                "columns": ["Name", "Amount"],
            },
        ]
        mock_pool.fetch.side_effect = [columns_rows, check_rows, index_rows]

        columns = await introspector.fetch_table_schema("User")

        assert list(columns) == ["UserID", "Name", "Status", "Amount", "LegacyID"]

        user_id = columns["UserID"]
        assert user_id.type == "int"
        assert user_id.auto_increment is True
        assert user_id.allow_null is False
        assert user_id.key_type.value == "primary"

        name = columns["Name"]
        assert (name.type, name.length) == ("varchar", 50)
        assert name.key_type.value == ["unique", "index.Pair"]

        status = columns["Status"]
        assert status.type == "enum"
        assert status.enum_values == ["active", "banned"]
        assert status.default == "active"

        amount = columns["Amount"]
        assert (amount.type, amount.length, amount.precision) == ("decimal", 10, 2)
        assert amount.allow_null is True
        assert amount.default == "0"
        assert amount.key_type.value == "index.Pair"

        legacy = columns["LegacyID"]
        assert legacy.auto_increment is True
        assert legacy.default is None
        assert not legacy.key_type

    @pytest.mark.asyncio
    async def test_fetch_table_schema_error(self, introspector, mock_pool):
        mock_pool.fetch.side_effect = asyncpg.InterfaceError("connection closed")

        with pytest.raises(ExecutionError) as exc_info:
            await introspector.fetch_table_schema("User")
        assert "Failed to get columns" in str(exc_info.value)
