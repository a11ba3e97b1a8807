"""Typed table schema definitions for CookieDB.

A table schema maps field names to type descriptors. On the wire a descriptor
is a string such as ``"string"`` or ``"unique nullable number"``; nested
objects are described by a nested mapping. This module parses descriptors into
`FieldType` values, renders them back to their canonical wire form, and
validates raw schema documents against the packaged JSON Schema.
"""

from __future__ import annotations

import json
import logging
import pkgutil
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

import jsonschema

from cookiedb.core.typed.types import FieldKind, Modifier

logger = logging.getLogger(__name__)

_LEGACY_NULLABLE_SUFFIX = "?"


class SchemaError (ValueError):
    pass


@dataclass(frozen=True, eq=False)
class FieldType:
    """Type descriptor for a single schema field.

    Attributes:
        kind: The primitive kind of the field.
        nullable: Whether the field accepts null.
        unique: Whether the server enforces uniqueness of the field value.

    Equality ignores the order in which modifiers were written. A FieldType
    also compares and hashes equal to its canonical descriptor string, so
    either can be used as a set member or mapping key; other spellings of
    the same type must go through `parse` first.

    Example:
        >>> FieldType.parse("unique nullable string") == "nullable unique string"
        True
        >>> FieldType.parse("string?") == "string?"
        False
        >>> str(FieldType(FieldKind.number, nullable=True))
        'nullable number'
    """

    kind: FieldKind
    nullable: bool = False
    unique: bool = False

    @classmethod
    def parse(cls, descriptor: str) -> FieldType:
        """Parse a descriptor string.

        The legacy ``"<kind>?"`` form is read as ``"nullable <kind>"``.

        Raises:
            SchemaError: On an unknown kind, an unknown or repeated modifier,
                or a non-string descriptor.
        """
        if isinstance(descriptor, FieldType):
            return descriptor
        if not isinstance(descriptor, str):
            raise SchemaError("Field type descriptor must be a string, not %s" % type(descriptor).__name__)

        words = descriptor.split()
        if not words:
            raise SchemaError("Empty field type descriptor")

        *modifiers, kind_name = words
        legacy_nullable = False
        if kind_name.endswith(_LEGACY_NULLABLE_SUFFIX):
            kind_name = kind_name[:-len(_LEGACY_NULLABLE_SUFFIX)]
            legacy_nullable = True

        try:
            kind = FieldKind.from_name(kind_name)
        except ValueError as e:
            raise SchemaError("Invalid field type %r: %s" % (descriptor, e))

        seen = set()
        for word in modifiers:
            try:
                modifier = Modifier(word)
            except ValueError:
                raise SchemaError("Invalid field type %r: unknown modifier %r" % (descriptor, word))
            if modifier in seen:
                raise SchemaError("Invalid field type %r: modifier %r repeated" % (descriptor, word))
            seen.add(modifier)

        if legacy_nullable and Modifier.nullable in seen:
            raise SchemaError("Invalid field type %r: modifier 'nullable' repeated" % descriptor)

        return cls(kind, nullable=legacy_nullable or Modifier.nullable in seen, unique=Modifier.unique in seen)

    def __str__(self) -> str:
        words = []
        if self.nullable:
            words.append(Modifier.nullable.value)
        if self.unique:
            words.append(Modifier.unique.value)
        words.append(self.kind.value)
        return " ".join(words)

    def __repr__(self) -> str:
        return "FieldType(%r)" % str(self)

    def _key(self):
        return self.kind, self.nullable, self.unique

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return str(self) == other
        if not isinstance(other, FieldType):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        # must agree with the canonical string, which compares equal
        return hash(str(self))


Schema = Dict[str, Union[FieldType, "Schema"]]


def parse_schema(schema: Mapping[str, Any]) -> Schema:
    """Parse a raw schema mapping into nested `FieldType` values.

    Raises:
        SchemaError: If any descriptor is malformed or a value is neither a
            descriptor string nor a nested mapping.
    """
    if not isinstance(schema, Mapping):
        raise SchemaError("Schema must be a mapping, not %s" % type(schema).__name__)
    parsed = {}
    for name, descriptor in schema.items():
        if isinstance(descriptor, Mapping):
            parsed[name] = parse_schema(descriptor)
        else:
            try:
                parsed[name] = FieldType.parse(descriptor)
            except SchemaError as e:
                raise SchemaError("Field %r: %s" % (name, e))
    return parsed


def schema_to_json(schema: Mapping[str, Any]) -> Dict[str, Any]:
    """Render a schema (typed or raw) as a JSON mapping of canonical descriptor strings."""
    rendered = {}
    for name, descriptor in schema.items():
        if isinstance(descriptor, Mapping):
            rendered[name] = schema_to_json(descriptor)
        else:
            rendered[name] = str(FieldType.parse(descriptor))
    return rendered


def _load_table_schema() -> Dict[str, Any]:
    from cookiedb import core
    return json.loads(pkgutil.get_data(core.__name__, 'schemas/table_schema.schema.json').decode())


_table_schema = None


def validate_schema(schema: Any) -> List[jsonschema.ValidationError]:
    """Validate a raw schema document against the packaged table schema.

    :param schema: the decoded JSON schema document
    :return: a list of validation errors, if any
    """
    global _table_schema
    if _table_schema is None:
        _table_schema = _load_table_schema()
    validator = jsonschema.Draft7Validator(_table_schema)
    errors = sorted(validator.iter_errors(schema), key=lambda e: list(e.absolute_path))
    for error in errors:
        logger.debug("Schema validation error at %s: %s" % ("/".join(map(str, error.absolute_path)), error.message))
    return errors
