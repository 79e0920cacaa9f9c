"""
Record Graph Container Models

Lightweight Pydantic models defining the contract between container producers
(graphport exporter) and consumers (graphport importer, or any other tool that
reads the format).

On disk a container is a directory:

    <root>/
      records.json
      attachments/
        <UUID>.dat

`records.json` holds the ordered `entity_names` list plus one key per entity
kind mapping to a list of serialized records.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field, JsonValue

RECORDS_FILENAME = "records.json"
ATTACHMENTS_DIRNAME = "attachments"
ENTITY_NAMES_KEY = "entity_names"
OBJECT_ID_KEY = "_object_id_"
BLOB_EXTENSION = ".dat"

SerializedRecord = Dict[str, JsonValue]


class RelationshipReference(BaseModel):
    """A to-one relationship value inside a serialized record.

    `record_id` is the original id of the target as captured at export time.
    It is only a correlation key: importers never reuse it as an identity.
    """

    record_id: str = Field(..., description="Original id of the target record")
    entity: str | None = Field(None, description="Entity kind name of the target record")


class BlobReference(BaseModel):
    """A binary attribute value stored outside the JSON document."""

    data: str = Field(..., description="File name relative to the attachments directory")


class Container(BaseModel):
    """The portable representation of one exported record graph.

    `entity_names` is authoritative for iteration order on both sides.
    `records` may lack a key for a listed kind; consumers treat that as an
    empty list.
    """

    entity_names: List[str] = Field(default_factory=list)
    records: Dict[str, List[Any]] = Field(default_factory=dict)

    def records_for(self, entity: str) -> List[Any]:
        return self.records.get(entity, [])

    def record_count(self) -> int:
        return sum(len(self.records_for(name)) for name in self.entity_names)

    def to_document(self) -> Dict[str, Any]:
        """Return the JSON object written to `records.json`."""
        document: Dict[str, Any] = {name: self.records_for(name) for name in self.entity_names}
        document[ENTITY_NAMES_KEY] = list(self.entity_names)
        return document
