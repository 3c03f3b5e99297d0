"""
Database engine drivers that render structure statements.
"""

from .base import StructureDriver
from .postgres import PostgresStructureDriver

__all__ = [
    "StructureDriver",
    "PostgresStructureDriver",
]
