"""
Key classification for column definitions.

A column joins keys through tags such as ``primary``, ``unique`` or
``index.ByDate``; the part after the dot names a key shared by several
columns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union


class KeyKind(str, Enum):
    """Recognized key tag prefixes."""

    PRIMARY = "primary"
    KEY = "key"
    INDEX = "index"
    UNIQUE = "unique"
    FULLTEXT = "fulltext"


VALID_PREFIXES = frozenset(kind.value for kind in KeyKind)

RawKeyType = Union[None, bool, str, Iterable[str]]


def split_tag(tag: str) -> Tuple[str, Optional[str]]:
    """Split a key tag into its prefix and optional group name."""
    prefix, _, group = tag.partition(".")
    return prefix, group or None


@dataclass(frozen=True)
class KeyAssignment:
    """Normalized key membership of one column."""

    tags: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.tags)

    def __iter__(self):
        return iter(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    @property
    def value(self) -> Union[None, str, List[str]]:
        """No key, the single tag, or the ordered list of tags."""
        if not self.tags:
            return None
        if len(self.tags) == 1:
            return self.tags[0]
        return list(self.tags)

    @property
    def kinds(self) -> Tuple[str, ...]:
        return tuple(split_tag(tag)[0] for tag in self.tags)

    @property
    def is_primary(self) -> bool:
        return KeyKind.PRIMARY.value in self.kinds

    def groups(self, column_name: str) -> List[Tuple[str, str]]:
        """
        Get ``(kind, group)`` pairs this column participates in.

        ``key`` and ``index`` are the same thing; an ungrouped tag forms a
        key of its own named after the column. Primary keys have one group.
        """
        result = []
        for tag in self.tags:
            prefix, group = split_tag(tag)
            if prefix == KeyKind.PRIMARY.value:
                pair = (prefix, "primary")
            else:
                if prefix == KeyKind.KEY.value:
                    prefix = KeyKind.INDEX.value
                pair = (prefix, group or column_name)
            if pair not in result:
                result.append(pair)
        return result


def classify(raw: RawKeyType) -> KeyAssignment:
    """
    Classify raw key tags into a key assignment.

    Unrecognized prefixes are dropped silently. The output keeps the
    input order.
    """
    if raw is None or raw is False or raw == "":
        return KeyAssignment()
    if isinstance(raw, KeyAssignment):
        return raw
    if isinstance(raw, str):
        raw = [raw]

    accepted = []
    for tag in raw:
        if not isinstance(tag, str) or not tag:
            continue
        prefix, _ = split_tag(tag)
        if prefix in VALID_PREFIXES:
            accepted.append(tag)

    return KeyAssignment(tuple(accepted))
