"""
Field declarations for record streams.
An ordered list of (name, type) pairs, plus the ALL/UNKNOWN wildcard markers.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Field:
    """A single named field with an optional declared type."""
    name: str
    type: Any = None


class Fields:
    """
    Ordered, immutable collection of fields.

    Types may be Python types (int, str, ...) or warehouse type strings
    ('varchar(64)'). The ALL and UNKNOWN class attributes are wildcard
    markers that carry no names and no types.
    """

    ALL: 'Fields'
    UNKNOWN: 'Fields'

    def __init__(self, fields: Iterable[Union[Field, Tuple[str, Any], str]] = (),
                 wildcard: Optional[str] = None):
        self._fields: Tuple[Field, ...] = tuple(self._coerce(f) for f in fields)
        self._wildcard = wildcard

    @staticmethod
    def _coerce(value: Union[Field, Tuple[str, Any], str]) -> Field:
        if isinstance(value, Field):
            return value
        if isinstance(value, str):
            return Field(value)
        name, field_type = value
        return Field(name, field_type)

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, Any]]) -> 'Fields':
        """Create from a sequence of (name, type) pairs"""
        return cls(Field(name, field_type) for name, field_type in pairs)

    @property
    def is_wildcard(self) -> bool:
        return self._wildcard is not None

    @property
    def names(self) -> List[str]:
        return [f.name for f in self._fields]

    @property
    def types(self) -> Optional[List[Any]]:
        """Declared types, or None unless every field carries one"""
        if not self._fields or any(f.type is None for f in self._fields):
            return None
        return [f.type for f in self._fields]

    def __iter__(self):
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getitem__(self, index: int) -> Field:
        return self._fields[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Fields):
            return NotImplemented
        return self._fields == other._fields and self._wildcard == other._wildcard

    def __hash__(self) -> int:
        return hash((self._fields, self._wildcard))

    def __repr__(self) -> str:
        if self._wildcard:
            return f"Fields.{self._wildcard}"
        pairs = ", ".join(f"{f.name}:{getattr(f.type, '__name__', f.type)}" for f in self._fields)
        return f"Fields([{pairs}])"


Fields.ALL = Fields(wildcard='ALL')
Fields.UNKNOWN = Fields(wildcard='UNKNOWN')
