"""
Comparison of a table definition with the live table.

Produces the complete, engine-independent set of changes that modify
mode must apply; drivers only render it as SQL.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .column import ColumnDescriptor, find_column
from .definition import collect_key_groups
from .keys import KeyKind
from .types import render_type_string


class ColumnField(str, Enum):
    """Column properties compared in modify mode."""

    TYPE = "type"
    LENGTH = "length"
    PRECISION = "precision"
    ENUM_VALUES = "enum_values"
    NULLABILITY = "allow_null"
    DEFAULT = "default"
    AUTO_INCREMENT = "auto_increment"
    KEY = "key_type"


@dataclass
class ColumnModification:
    """A column present in both definitions whose properties differ."""

    target: ColumnDescriptor
    existing: ColumnDescriptor
    fields: List[ColumnField]

    @property
    def name(self) -> str:
        return self.existing.name

    def changed(self, column_field: ColumnField) -> bool:
        return column_field in self.fields


@dataclass
class KeyChange:
    """A key to add or remove; ``name`` is set for keys that exist."""

    kind: str
    group: str
    columns: List[str]
    name: Optional[str] = None

    @property
    def is_primary(self) -> bool:
        return self.kind == KeyKind.PRIMARY.value


@dataclass
class TableDiff:
    """Net set of operations that bring a live table to its definition."""

    table: str
    added: List[ColumnDescriptor] = field(default_factory=list)
    modified: List[ColumnModification] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    keys_added: List[KeyChange] = field(default_factory=list)
    keys_dropped: List[KeyChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.added or self.modified or self.dropped or self.keys_added or self.keys_dropped
        )

    def summary(self) -> Dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "dropped": len(self.dropped),
            "keys_added": len(self.keys_added),
            "keys_dropped": len(self.keys_dropped),
        }


TypeComparator = Callable[[ColumnDescriptor, ColumnDescriptor], bool]


def default_same_type(target: ColumnDescriptor, existing: ColumnDescriptor) -> bool:
    """Compare rendered type strings case-insensitively."""
    left, right = render_type_string(target), render_type_string(existing)
    if isinstance(left, list) or isinstance(right, list):
        # Enumerations compare by type; their values are a separate field.
        return target.type.lower() == existing.type.lower()
    return str(left).lower() == str(right).lower()


def _default_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def same_default(left: Any, right: Any) -> bool:
    left, right = _default_text(left), _default_text(right)
    if left == right:
        return True
    if left is None or right is None:
        return False
    try:
        return Decimal(left) == Decimal(right)
    except InvalidOperation:
        return False


def _key_set(column: ColumnDescriptor) -> set:
    return {(kind, group.lower()) for kind, group in column.key_type.groups(column.name)}


def compare_column(
    target: ColumnDescriptor,
    existing: ColumnDescriptor,
    same_type: TypeComparator = default_same_type,
) -> List[ColumnField]:
    """List the properties of ``existing`` that differ from ``target``."""
    fields: List[ColumnField] = []

    if not same_type(target, existing):
        if target.type.lower() != existing.type.lower():
            fields.append(ColumnField.TYPE)
        if (target.length or None) != (existing.length or None):
            fields.append(ColumnField.LENGTH)
        if (target.precision or None) != (existing.precision or None):
            fields.append(ColumnField.PRECISION)
        if not fields:
            fields.append(ColumnField.TYPE)

    if target.enum_values is not None and list(target.enum_values) != list(
        existing.enum_values or []
    ):
        fields.append(ColumnField.ENUM_VALUES)

    # Primary key columns are always stored NOT NULL.
    target_nullable = bool(target.allow_null) and not target.is_primary
    if target_nullable != bool(existing.allow_null):
        fields.append(ColumnField.NULLABILITY)

    if not target.auto_increment and not same_default(target.default, existing.default):
        fields.append(ColumnField.DEFAULT)

    if target.auto_increment and not existing.auto_increment:
        fields.append(ColumnField.AUTO_INCREMENT)

    if _key_set(target) != _key_set(existing):
        fields.append(ColumnField.KEY)

    return fields


def _lower_key(key: Tuple[str, str]) -> Tuple[str, str]:
    return key[0], key[1].lower()


def _same_members(left: Iterable[str], right: Iterable[str]) -> bool:
    return {name.lower() for name in left} == {name.lower() for name in right}


def compare(
    table: str,
    target: Mapping[str, ColumnDescriptor],
    existing: Mapping[str, ColumnDescriptor],
    existing_indexes: Mapping[str, Any],
    explicit: bool = False,
    same_type: TypeComparator = default_same_type,
) -> TableDiff:
    """
    Compute the changes that make ``existing`` match ``target``.

    Columns only in ``existing`` are kept unless ``explicit`` is set. An
    existing key that the target no longer declares is dropped when any of
    its columns is part of the target, or always when ``explicit`` is set.
    """
    diff = TableDiff(table=table)

    for name, column in target.items():
        current = find_column(existing, name)
        if current is None:
            diff.added.append(column)
            continue
        fields = compare_column(column, current, same_type)
        if fields:
            diff.modified.append(ColumnModification(column, current, fields))

    if explicit:
        diff.dropped = [name for name in existing if find_column(target, name) is None]

    desired = {_lower_key(key): (key, members) for key, members in collect_key_groups(target).items()}

    present = {}
    for index in existing_indexes.values():
        key = index.key
        if key is not None:
            present[_lower_key(key)] = index

    for lowered, index in present.items():
        wanted = desired.get(lowered)
        if wanted is not None:
            if _same_members(wanted[1], index.columns):
                continue
        elif not explicit and not any(find_column(target, c) is not None for c in index.columns):
            continue
        diff.keys_dropped.append(
            KeyChange(index.key[0], index.key[1], list(index.columns), name=index.name)
        )

    dropped_keys = {_lower_key((k.kind, k.group)) for k in diff.keys_dropped}
    for lowered, (key, members) in desired.items():
        if lowered in present and lowered not in dropped_keys:
            continue
        diff.keys_added.append(KeyChange(key[0], key[1], list(members)))

    # Primary key removal always precedes its replacement.
    diff.keys_dropped.sort(key=lambda k: not k.is_primary)
    diff.keys_added.sort(key=lambda k: not k.is_primary)
    return diff
