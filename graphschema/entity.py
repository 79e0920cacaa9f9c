"""Entity kinds: the schema a store declares for its records.

An `EntityKind` names a record type and lists its attributes and
relationships in declaration order. The order matters: the exporter walks
fields in that order, so identical stores produce identical documents.

Relationships are described, never owned. A to-one relationship holds at
most one target record; a to-many relationship holds any number. Only the
to-one side takes part in export and import.
"""

from pydantic import BaseModel, Field, model_validator

from graphbundle.models import ENTITY_NAMES_KEY
from graphschema.attribute import AttributeKind


class RelationshipDescription(BaseModel, frozen=True):
    """One relationship of an entity kind.

    Attributes:
        name: Field name on the source record.
        destination: Name of the target entity kind.
        to_many: True when the field can hold more than one target.
    """

    name: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    to_many: bool = False


class EntityKind(BaseModel, frozen=True):
    """A named record type with a fixed attribute/relationship schema.

    `attributes` maps attribute names to kind names. Kind names outside
    `AttributeKind` are allowed so a store can describe itself faithfully;
    they are simply not serializable.

    Example:
        ```python
        person = EntityKind(
            name="Person",
            attributes={"name": "string", "born": "date"},
            relationships={
                "bestFriend": RelationshipDescription(name="bestFriend", destination="Person"),
            },
        )
        ```
    """

    name: str = Field(..., min_length=1)
    attributes: dict[str, str] = Field(default_factory=dict)
    relationships: dict[str, RelationshipDescription] = Field(default_factory=dict)

    @model_validator(mode="after")
    def name_does_not_collide(self) -> "EntityKind":
        if self.name == ENTITY_NAMES_KEY:
            raise ValueError(f"entity kind may not be named {ENTITY_NAMES_KEY!r}")
        overlap = set(self.attributes) & set(self.relationships)
        if overlap:
            raise ValueError(f"fields declared as both attribute and relationship: {sorted(overlap)}")
        return self

    def attribute_kind(self, name: str) -> AttributeKind | None:
        """Return the kind of attribute `name`, or None if unknown or unsupported."""
        kind_name = self.attributes.get(name)
        if kind_name is None:
            return None
        return AttributeKind.parse(kind_name)

    def to_one_relationships(self) -> list[RelationshipDescription]:
        """Return the to-one relationships in declaration order."""
        return [rel for rel in self.relationships.values() if not rel.to_many]
