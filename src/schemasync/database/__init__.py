"""
Database integration package for schemasync.

This package provides:
- Async PostgreSQL connection pooling with a capture log
- Schema introspection of tables, columns and indexes
"""

from .connection import ConnectionPool
from .introspection import SchemaIntrospector, IndexInfo

__all__ = [
    "ConnectionPool",
    "SchemaIntrospector",
    "IndexInfo",
]
