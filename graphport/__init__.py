"""
graphport - Record Graph Export and Import.

Serializes a graph of typed, identity-bearing records from a store into a
portable container (records.json plus an attachments directory, optionally
zipped) and rebuilds an equivalent graph in another store, re-linking
to-one relationships under the records' new runtime ids.

    from graphport import StoreGraphExporter, GraphImporter

    exporter = await StoreGraphExporter.for_store(source_storage)
    await exporter.export_archive(Path("graph.zip"), blob_threshold=4096)

    result = await GraphImporter(target_storage).import_path(Path("graph.zip"))
"""

from graphport.blobs import BlobStore
from graphport.codec import DATE_FORMAT, decode_attribute, encode_attribute
from graphport.config import (
    ExcludedFields,
    ExportSettings,
    GraphPortConfig,
    ImportSettings,
    load_config,
)
from graphport.errors import (
    CommitError,
    ContainerError,
    ContainerNotFoundError,
    DuplicateRecordError,
    ExportWriteError,
    FieldDecodeError,
    GraphPortError,
    MalformedContainerError,
    MissingEntityListError,
    MissingObjectIdError,
)
from graphport.export import GraphExporter, StoreGraphExporter, write_container
from graphport.importer import (
    DuplicateDetector,
    GraphImporter,
    ImportPhase,
    ImportResult,
    MatchingFieldsDetector,
    read_container,
    read_into,
)
from graphport.registry import LinkReport, PendingRelationship, RelationshipRegistry

__all__ = [
    "BlobStore",
    "CommitError",
    "ContainerError",
    "ContainerNotFoundError",
    "DATE_FORMAT",
    "DuplicateDetector",
    "DuplicateRecordError",
    "ExcludedFields",
    "ExportSettings",
    "ExportWriteError",
    "FieldDecodeError",
    "GraphExporter",
    "GraphImporter",
    "GraphPortConfig",
    "GraphPortError",
    "ImportPhase",
    "ImportResult",
    "ImportSettings",
    "LinkReport",
    "MalformedContainerError",
    "MatchingFieldsDetector",
    "MissingEntityListError",
    "MissingObjectIdError",
    "PendingRelationship",
    "RelationshipRegistry",
    "StoreGraphExporter",
    "decode_attribute",
    "encode_attribute",
    "load_config",
    "read_container",
    "read_into",
    "write_container",
]

__version__ = "0.1.0"
