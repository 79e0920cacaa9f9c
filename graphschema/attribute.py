"""Attribute kinds understood by the record graph container.

The set is closed: a store may declare attributes of other kinds (for
example opaque "transformable" values), but those resolve to `None` here
and are never exported or imported.
"""

from enum import Enum


class AttributeKind(str, Enum):
    """Scalar attribute kinds that survive an export/import round trip."""

    BOOL = "bool"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    UUID = "uuid"
    URI = "uri"
    DATE = "date"
    BINARY = "binary"

    @classmethod
    def parse(cls, name: str) -> "AttributeKind | None":
        """Return the kind named `name`, or None for kinds outside the closed set."""
        try:
            return cls(name)
        except ValueError:
            return None
