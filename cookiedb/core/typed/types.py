"""Type enumerations and value aliases for CookieDB documents and schemas.

This module provides typed enumerations for the field kinds and modifiers used
in table schema descriptors, and the recursive type aliases describing the
JSON values exchanged with the server.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Mapping, Union


class FieldKind(str, Enum):
    """Primitive field kinds accepted in a table schema.

    - string: UTF-8 text value
    - boolean: true/false value
    - number: JSON number (integer or floating point)
    - foreign_key: key of another document, which may be expanded on read
    """

    string = "string"
    boolean = "boolean"
    number = "number"
    foreign_key = "foreign_key"

    @classmethod
    def from_name(cls, name: str) -> FieldKind:
        """Look up a kind by its wire name.

        Raises:
            ValueError: If the name is not a known kind.
        """
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown field kind: {name!r}")

    def __str__(self) -> str:
        return self.value


class Modifier(str, Enum):
    """Schema descriptor modifiers. Each may appear at most once, in any order."""

    nullable = "nullable"
    unique = "unique"

    def __str__(self) -> str:
        return self.value


Scalar = Union[str, int, float, bool, None]
Value = Union[Scalar, List["Value"], Dict[str, "Value"]]
Document = Dict[str, Value]
Alias = Mapping[str, Union[str, "Alias"]]
