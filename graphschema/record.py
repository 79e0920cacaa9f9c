"""Records and fetch criteria.

A `Record` is one instance of an entity kind, identified by the opaque
RuntimeID its store assigned. Records own their attribute values; a to-one
relationship is stored as the target's RuntimeID and resolved through the
store, so cyclic graphs need no special handling.
"""

from typing import Any

from pydantic import BaseModel, Field


class Record(BaseModel):
    """A store-owned record.

    Unlike entity kinds, records are mutable: the importer creates them empty
    and fills them field by field. Setting a field to None unsets it.
    """

    runtime_id: str = Field(..., min_length=1)
    entity: str = Field(..., min_length=1)
    values: dict[str, Any] = Field(default_factory=dict)

    def get(self, field: str) -> Any:
        """Return the value of `field`, or None when unset."""
        return self.values.get(field)

    def set(self, field: str, value: Any) -> None:
        """Set `field` to `value`; None removes the field."""
        if value is None:
            self.values.pop(field, None)
        else:
            self.values[field] = value

    def is_set(self, field: str) -> bool:
        return field in self.values


class FetchCriteria(BaseModel, frozen=True):
    """A single fetch request against one entity kind.

    Attributes:
        entity: Entity kind to fetch.
        match: Field values a record must equal to be returned.
        sort_by: Optional field to sort ascending on; unset values sort first.
        limit: Optional maximum number of records.
    """

    entity: str = Field(..., min_length=1)
    match: dict[str, Any] = Field(default_factory=dict)
    sort_by: str | None = None
    limit: int | None = Field(default=None, ge=0)
