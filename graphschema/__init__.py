"""
Record Graph Schema - Base Models and Interfaces

This package contains only Pydantic models and ABC interfaces with no
functional code. It defines:

- Attribute kinds (the closed set of serializable scalar kinds)
- Entity kinds and relationship descriptions
- Records and fetch criteria
- The storage interface the exporter and importer consume

These are used by graphport (export/import) and by store implementations.
"""

from graphschema.attribute import AttributeKind
from graphschema.entity import EntityKind, RelationshipDescription
from graphschema.record import FetchCriteria, Record
from graphschema.storage import RecordStorageInterface, StorageError

__all__ = [
    "AttributeKind",
    "EntityKind",
    "FetchCriteria",
    "Record",
    "RecordStorageInterface",
    "RelationshipDescription",
    "StorageError",
]

__version__ = "0.1.0"
