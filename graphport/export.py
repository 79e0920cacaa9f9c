import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from pydantic import JsonValue

from graphbundle import (
    ATTACHMENTS_DIRNAME,
    OBJECT_ID_KEY,
    RECORDS_FILENAME,
    Container,
    RelationshipReference,
    SerializedRecord,
)
from graphschema.attribute import AttributeKind
from graphschema.entity import EntityKind
from graphschema.record import FetchCriteria, Record
from graphschema.storage import RecordStorageInterface

from graphport.archive import is_archive, pack
from graphport.blobs import BlobStore
from graphport.codec import encode_attribute
from graphport.config import ExcludedFields, ExportSettings
from graphport.errors import DuplicateRecordError, ExportWriteError, FieldDecodeError
from graphport.logging import setup_logging

logger = setup_logging()


def original_id_for(runtime_id: Any) -> str:
    """Return the correlation key written for a record with `runtime_id`."""
    return str(runtime_id)


def _prepare_directory(directory: Path) -> Path:
    """Removes anything at `directory` and recreates it with an attachments folder.

    Returns:
        The attachments directory.

    Raises:
        ExportWriteError: If the directory cannot be cleared or created.
    """
    attachments_dir = directory / ATTACHMENTS_DIRNAME
    try:
        if directory.is_dir() and not directory.is_symlink():
            shutil.rmtree(directory)
        elif directory.exists() or directory.is_symlink():
            directory.unlink()
        attachments_dir.mkdir(parents=True)
    except OSError as exc:
        raise ExportWriteError(f"could not prepare export directory {directory}: {exc}") from exc
    return attachments_dir


def encode_record(
    record: Record,
    kind: EntityKind,
    blobs: BlobStore,
    excluding: frozenset[str] = frozenset(),
) -> SerializedRecord:
    """Serializes one record: its original id, attributes and to-one relationships.

    Attributes are written in declaration order. Unset attributes, attributes
    of kinds outside `AttributeKind`, excluded fields and to-many
    relationships are left out. A value whose Python type contradicts its
    declared kind is logged and left out.

    Args:
        record: The record to serialize.
        kind: The record's entity kind.
        blobs: Blob store used for binary attributes.
        excluding: Field names to leave out.

    Returns:
        The JSON object for this record.

    Raises:
        ExportWriteError: If a blob file cannot be written.
    """
    serialized: SerializedRecord = {OBJECT_ID_KEY: original_id_for(record.runtime_id)}

    for name in kind.attributes:
        if name in excluding:
            continue
        attribute_kind = kind.attribute_kind(name)
        if attribute_kind is None or not record.is_set(name):
            continue
        value = record.get(name)
        if attribute_kind is AttributeKind.BINARY:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                logger.warning(
                    {
                        "message": "Skipping binary attribute with non-bytes value",
                        "entity": kind.name,
                        "field": name,
                        "record": record.runtime_id,
                    }
                )
                continue
            serialized[name] = blobs.externalize(bytes(value))
            continue
        try:
            serialized[name] = encode_attribute(value, attribute_kind)
        except FieldDecodeError as exc:
            logger.warning(
                {
                    "message": "Skipping attribute that does not match its kind",
                    "entity": kind.name,
                    "field": name,
                    "record": record.runtime_id,
                    "error": str(exc),
                }
            )

    for relationship in kind.to_one_relationships():
        if relationship.name in excluding:
            continue
        if not record.is_set(relationship.name):
            continue
        target = record.get(relationship.name)
        reference = RelationshipReference(
            record_id=original_id_for(target),
            entity=relationship.destination,
        )
        serialized[relationship.name] = reference.model_dump()

    return serialized


class GraphExporter(Protocol):
    async def export(
        self,
        directory: Path,
        excluding: Optional[ExcludedFields] = None,
        blob_threshold: Optional[int] = None,
    ) -> Container: ...  # type: ignore


class StoreGraphExporter:
    """Walks entity kinds of a store and writes them as a container.

    Build one with a constructor matching the export mode; the modes are
    mutually exclusive:

    - `for_store`: every entity kind of the store, every record of each kind.
    - `for_criteria`: the one entity kind named by a fetch criterion, the
      records matching it.
    - `for_records`: an explicit record list, walked kind by kind in the
      store's declaration order.

    The source store is never mutated.

    Example:
        ```python
        exporter = await StoreGraphExporter.for_store(storage)
        container = await exporter.export(Path("out"), blob_threshold=4096)
        ```
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        entities: Sequence[EntityKind],
        criteria: FetchCriteria | None = None,
        records: Sequence[Record] | None = None,
    ):
        if not entities:
            raise ValueError("nothing to export: no entity kinds")
        if criteria is not None and records is not None:
            raise ValueError("an export walks either a fetch criterion or a record list, not both")
        self.storage = storage
        self.entities = list(entities)
        self.criteria = criteria
        self.records = list(records) if records is not None else None

    @classmethod
    async def for_store(cls, storage: RecordStorageInterface) -> "StoreGraphExporter":
        return cls(storage, await storage.entity_kinds())

    @classmethod
    async def for_criteria(cls, storage: RecordStorageInterface, criteria: FetchCriteria) -> "StoreGraphExporter":
        kind = await storage.entity_kind(criteria.entity)
        if kind is None:
            raise ValueError(f"unknown entity kind: {criteria.entity!r}")
        return cls(storage, [kind], criteria=criteria)

    @classmethod
    async def for_records(cls, storage: RecordStorageInterface, records: Sequence[Record]) -> "StoreGraphExporter":
        unique: dict[str, Record] = {}
        for record in records:
            unique.setdefault(record.runtime_id, record)
        if not unique:
            raise ValueError("nothing to export: empty record list")

        present = {record.entity for record in unique.values()}
        kinds = [kind for kind in await storage.entity_kinds() if kind.name in present]
        unknown = present - {kind.name for kind in kinds}
        if unknown:
            raise ValueError(f"records of unknown entity kinds: {sorted(unknown)}")
        return cls(storage, kinds, records=list(unique.values()))

    async def records_for(self, kind: EntityKind) -> list[Record]:
        """Returns the records to export for `kind` under this exporter's mode.

        Fetch errors propagate: a failed fetch aborts the export.
        """
        if self.records is not None:
            return [record for record in self.records if record.entity == kind.name]
        return await self.storage.fetch(kind.name, self.criteria)

    async def build_container(
        self,
        blobs: BlobStore,
        excluding: ExcludedFields,
    ) -> Container:
        """Encodes every walked record into a Container, writing blobs as it goes."""
        container = Container(entity_names=[kind.name for kind in self.entities])
        seen: set[str] = set()

        for kind in self.entities:
            entity_records: list[JsonValue] = []
            excluded = excluding.excluded_for(kind.name)
            for record in await self.records_for(kind):
                serialized = encode_record(record, kind, blobs, excluded)
                original_id = serialized[OBJECT_ID_KEY]
                if original_id in seen:
                    raise DuplicateRecordError(f"original id {original_id!r} appears more than once")
                seen.add(original_id)  # type: ignore[arg-type]
                entity_records.append(serialized)
            container.records[kind.name] = entity_records
            logger.debug({"message": "Encoded entity kind", "entity": kind.name, "records": len(entity_records)})

        return container

    async def export(
        self,
        directory: Path,
        excluding: Optional[ExcludedFields] = None,
        blob_threshold: Optional[int] = None,
    ) -> Container:
        """Exports the walked records into a container directory.

        Anything already at `directory` is removed first. Files written before
        a failure are left in place; export to a temporary location and move
        it if atomicity matters.

        Args:
            directory: Container root to create.
            excluding: Global and per-entity field exclusions.
            blob_threshold: Byte size above which binary values are written
                to the attachments directory. None inlines all binary data.

        Returns:
            The container that was written.

        Raises:
            ExportWriteError: If the directory, a blob or records.json cannot be written.
            DuplicateRecordError: If two records share an original id.
            StorageError: If fetching records fails.
        """
        directory = Path(directory)
        excluding = excluding or ExcludedFields()
        logger.info(
            {
                "message": "Exporting record graph",
                "directory": str(directory),
                "entities": [kind.name for kind in self.entities],
            }
        )
        attachments_dir = _prepare_directory(directory)
        blobs = BlobStore(attachments_dir, threshold=blob_threshold)

        container = await self.build_container(blobs, excluding)

        records_file = directory / RECORDS_FILENAME
        try:
            with open(records_file, "w") as f:
                json.dump(container.to_document(), f)
        except (OSError, TypeError, ValueError) as exc:
            raise ExportWriteError(f"could not write {records_file}: {exc}") from exc

        logger.info(
            {
                "message": "Exported record graph",
                "directory": str(directory),
                "entities": container.entity_names,
                "records": container.record_count(),
                "blob_files": blobs.files_written,
            }
        )
        return container

    async def export_archive(
        self,
        archive_path: Path,
        excluding: Optional[ExcludedFields] = None,
        blob_threshold: Optional[int] = None,
    ) -> Container:
        """Exports into a temporary directory and packs it into a zip archive.

        The temporary directory is removed whether or not the export succeeds.
        """
        with tempfile.TemporaryDirectory(prefix="graphport-") as tmpdir:
            staging = Path(tmpdir) / "container"
            container = await self.export(staging, excluding=excluding, blob_threshold=blob_threshold)
            pack(staging, Path(archive_path))
        return container


async def write_container(
    storage: RecordStorageInterface,
    path: Path,
    settings: Optional[ExportSettings] = None,
) -> Container:
    """Writes every record of `storage` to a container directory or zip archive.

    This function is a convenient wrapper around `StoreGraphExporter.for_store`.
    A path ending in ``.zip`` produces an archive; anything else a directory.

    Args:
        storage: The store to export.
        path: Destination directory or ``.zip`` file.
        settings: Exclusions and blob threshold, usually the ``export``
            section of a loaded `GraphPortConfig`. Defaults export everything
            with binary data inlined.
    """
    settings = settings or ExportSettings()
    exporter = await StoreGraphExporter.for_store(storage)
    if is_archive(path):
        return await exporter.export_archive(
            path, excluding=settings.excluding, blob_threshold=settings.blob_threshold
        )
    return await exporter.export(path, excluding=settings.excluding, blob_threshold=settings.blob_threshold)
