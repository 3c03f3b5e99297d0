"""
Type catalog for column definitions.

Groups the recognized type names into families that decide whether a
declared length or precision is meaningful for a column.
"""

from typing import Any, Tuple


DATE_TYPES = ("datetime", "date")
DECIMAL_TYPES = ("decimal", "numeric")
FLOAT_TYPES = ("float", "double")
INT_TYPES = ("int", "tinyint", "smallint", "mediumint", "bigint")
STRING_TYPES = ("varchar", "char", "mediumtext", "text")
LENGTH_TYPES = ("varbinary",)
OTHER_TYPES = ("enum", "tinyblob", "blob", "mediumblob", "longblob", "ipaddress")

# Integer and floating types drop a declared display length.
LENGTHLESS_TYPES = INT_TYPES + FLOAT_TYPES

_FAMILIES = {
    "date": DATE_TYPES,
    "decimal": DECIMAL_TYPES,
    "float": FLOAT_TYPES,
    "int": INT_TYPES,
    "string": STRING_TYPES,
    "other": LENGTH_TYPES + OTHER_TYPES,
    "numeric": FLOAT_TYPES + INT_TYPES + DECIMAL_TYPES,
    "length": STRING_TYPES + LENGTH_TYPES + DECIMAL_TYPES,
    "precision": DECIMAL_TYPES,
    "all": (
        DATE_TYPES
        + DECIMAL_TYPES
        + FLOAT_TYPES
        + INT_TYPES
        + STRING_TYPES
        + LENGTH_TYPES
        + OTHER_TYPES
    ),
}


def types(family: str = "all") -> Tuple[str, ...]:
    """
    Get the type names recognized in a family.

    Args:
        family: One of int, float, decimal, numeric, string, date, length,
            precision, other or all. Unknown families yield an empty tuple.
    """
    return _FAMILIES.get((family or "").lower(), ())


def is_type_in(type_name: str, family: str) -> bool:
    """Check whether a type name belongs to a family."""
    return (type_name or "").lower() in types(family)


def render_type_string(column: Any) -> Any:
    """
    Build the type definition text of a column.

    ``column`` is anything exposing ``type``, ``length``, ``precision`` and
    ``enum_values`` attributes. Enumerations render as their value list.
    """
    type_name = getattr(column, "type", None)
    length = getattr(column, "length", None)
    precision = getattr(column, "precision", None)

    if type_name and type_name.lower() in LENGTHLESS_TYPES:
        length = None

    if type_name and length and precision:
        return f"{type_name}({length},{precision})"
    elif type_name and length:
        return f"{type_name}({length})"
    elif type_name and type_name.lower() == "enum":
        return list(getattr(column, "enum_values", None) or [])
    elif type_name:
        return type_name
    return "int"
