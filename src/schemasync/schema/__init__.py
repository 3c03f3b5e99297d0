"""
Schema definition package for schemasync.

This package provides:
- Type catalog and key classification
- Column model and table definition builder
- Comparison of a definition with the live table

Sessions that talk to the database live in ``schemasync.schema.structure``.
"""

from .types import types, is_type_in, render_type_string
from .keys import KeyAssignment, KeyKind, classify
from .column import (
    ColumnDescriptor,
    NamedType,
    EnumeratedType,
    TypedEnumeratedType,
    define_column,
    parse_type_spec,
)
from .definition import TableDefinition
from .diff import TableDiff, ColumnField, compare

__all__ = [
    "types",
    "is_type_in",
    "render_type_string",
    "KeyAssignment",
    "KeyKind",
    "classify",
    "ColumnDescriptor",
    "NamedType",
    "EnumeratedType",
    "TypedEnumeratedType",
    "define_column",
    "parse_type_spec",
    "TableDefinition",
    "TableDiff",
    "ColumnField",
    "compare",
]
