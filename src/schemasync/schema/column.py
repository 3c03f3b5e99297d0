"""
Column model for table definitions.

Resolves the loosely typed arguments accepted by ``column()`` into a
canonical ColumnDescriptor once, at definition time.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, List, Mapping, Optional, Tuple, Union

from .keys import KeyAssignment, RawKeyType, classify
from .types import render_type_string


_TYPE_PATTERN = re.compile(r"(\w+)\s*\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")


@dataclass(frozen=True)
class NamedType:
    """A type given by name, e.g. ``"udecimal(10,2)"``."""

    name: str
    length: Optional[int] = None
    precision: Optional[int] = None
    unsigned: bool = False


@dataclass(frozen=True)
class EnumeratedType:
    """A bare list of allowed values."""

    values: Tuple[str, ...]


@dataclass(frozen=True)
class TypedEnumeratedType:
    """A ``[type_name, values]`` pair such as ``["set", [...]]``."""

    type_name: str
    values: Tuple[str, ...]


TypeSpec = Union[NamedType, EnumeratedType, TypedEnumeratedType]


def _parse_type_name(raw: str) -> NamedType:
    unsigned = False
    if raw[:1].lower() == "u":
        raw = raw[1:]
        unsigned = True

    length = precision = None
    match = _TYPE_PATTERN.search(raw)
    if match:
        raw = match.group(1)
        length = int(match.group(2))
        if match.group(3) is not None:
            precision = int(match.group(3))
    else:
        # Drop a qualifier we could not read rather than keep it in the name.
        raw = raw.split("(", 1)[0]

    return NamedType(raw.strip().lower(), length, precision, unsigned)


def parse_type_spec(raw: Any) -> TypeSpec:
    """Resolve a raw type argument into a TypeSpec variant."""
    if isinstance(raw, (NamedType, EnumeratedType, TypedEnumeratedType)):
        return raw
    if isinstance(raw, (list, tuple)):
        if len(raw) == 2 and isinstance(raw[1], (list, tuple)):
            return TypedEnumeratedType(str(raw[0]).lower(), tuple(raw[1]))
        return EnumeratedType(tuple(raw))
    if raw is None:
        return NamedType("")
    return _parse_type_name(str(raw))


def resolve_null_default(value: Any) -> Tuple[bool, Any]:
    """
    Map the null-or-default argument to ``(allow_null, default)``.

    ``True`` or ``None`` allows nulls, ``False`` forbids them, a mapping with
    ``Null``/``Default`` keys controls both, and any other value forbids
    nulls and becomes the default.
    """
    if value is None or value is True:
        return True, None
    if value is False:
        return False, None
    if isinstance(value, Mapping):
        return bool(value.get("Null", False)), value.get("Default")
    return False, value


@dataclass
class ColumnDescriptor:
    """Canonical definition of one table column."""

    name: str
    type: str = "int"
    length: Optional[int] = None
    precision: Optional[int] = None
    enum_values: Optional[List[str]] = None
    allow_null: bool = False
    default: Any = None
    key_type: KeyAssignment = field(default_factory=KeyAssignment)
    unsigned: bool = False
    auto_increment: bool = False

    def type_string(self) -> Any:
        return render_type_string(self)

    @property
    def is_primary(self) -> bool:
        return self.key_type.is_primary

    def copy(self, **changes) -> "ColumnDescriptor":
        return replace(self, **changes)

    def __str__(self) -> str:
        type_string = self.type_string()
        if isinstance(type_string, list):
            type_string = f"{self.type}({', '.join(repr(v) for v in type_string)})"
        result = f"{self.name} {type_string}"
        if self.unsigned:
            result += " unsigned"
        if not self.allow_null:
            result += " NOT NULL"
        if self.default is not None:
            result += f" DEFAULT {self.default}"
        if self.auto_increment:
            result += " AUTO_INCREMENT"
        if self.key_type:
            result += f" [{', '.join(self.key_type)}]"
        return result


def define_column(
    name: str,
    type_spec: Any = "int",
    null_default: Any = True,
    key_type: RawKeyType = None,
) -> ColumnDescriptor:
    """Build a ColumnDescriptor from the loosely typed column arguments."""
    allow_null, default = resolve_null_default(null_default)
    spec = parse_type_spec(type_spec)
    column = ColumnDescriptor(
        name=name,
        allow_null=allow_null,
        default=default,
        key_type=classify(key_type),
    )

    if isinstance(spec, EnumeratedType):
        column.type = "enum"
        column.enum_values = list(spec.values)
    elif isinstance(spec, TypedEnumeratedType):
        column.type = spec.type_name
        column.enum_values = list(spec.values)
    else:
        column.type = spec.name or "int"
        column.length = spec.length
        column.precision = spec.precision
        column.unsigned = spec.unsigned

    return column


def same_name(left: str, right: str) -> bool:
    return left.lower() == right.lower()


def find_column(columns: Mapping[str, Any], name: str) -> Optional[Any]:
    """Case-insensitive lookup, preferring an exact match."""
    if name in columns:
        return columns[name]
    for column_name, column in columns.items():
        if same_name(column_name, name):
            return column
    return None
