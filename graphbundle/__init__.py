"""
Record Graph Container Models

Lightweight Pydantic models defining the on-disk container contract shared by
the graphport exporter and importer.

This package has minimal dependencies (only pydantic) and is designed to be
importable by any consumer of the format without pulling in the core.

Example:
    # Producer side
    from graphbundle import Container, RelationshipReference

    ref = RelationshipReference(record_id="x-memory://a1/Person/p1", entity="Person")

    # Consumer side
    import json
    from graphbundle import ENTITY_NAMES_KEY

    with open("records.json") as f:
        names = json.load(f)[ENTITY_NAMES_KEY]
"""

from .models import (
    ATTACHMENTS_DIRNAME,
    BLOB_EXTENSION,
    ENTITY_NAMES_KEY,
    OBJECT_ID_KEY,
    RECORDS_FILENAME,
    BlobReference,
    Container,
    RelationshipReference,
    SerializedRecord,
)

__all__ = [
    "ATTACHMENTS_DIRNAME",
    "BLOB_EXTENSION",
    "ENTITY_NAMES_KEY",
    "OBJECT_ID_KEY",
    "RECORDS_FILENAME",
    "BlobReference",
    "Container",
    "RelationshipReference",
    "SerializedRecord",
]

__version__ = "0.1.0"
