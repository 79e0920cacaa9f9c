"""Two-pass import of a record graph container into a store.

The `GraphImporter` rebuilds a graph exported by `graphport.export` inside a
(possibly different) store. Records receive new RuntimeIDs there, so
relationship references, which name original ids, cannot be wired while
records are still being created. The import therefore runs in two passes:

**Pass 1 - Decoding:**
    For each entity kind in `entity_names` order and each serialized record
    in document order, decode attributes, create the record (or reuse a
    duplicate when duplicate checking is on), register its original id, and
    queue every relationship reference as a pending relationship.

**Pass 2 - Linking:**
    Resolve each pending relationship through the original-id map and set
    the field on the source record. References to records that were never
    imported are dropped.

Finally the store is saved once. A failed save rolls the store back and
raises `CommitError`.

Failure tiers follow `graphport.errors`: an unusable container aborts the
run before anything is created; a record without an original id is
skipped; a field that does not decode stays unset.

Example usage:
    ```python
    importer = GraphImporter(storage)
    result = await importer.import_path(Path("export.zip"))
    print(f"Imported {len(result.records)} records")
    ```
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, JsonValue, ValidationError

from graphbundle import (
    ATTACHMENTS_DIRNAME,
    ENTITY_NAMES_KEY,
    OBJECT_ID_KEY,
    Container,
    RelationshipReference,
)
from graphschema.attribute import AttributeKind
from graphschema.entity import EntityKind
from graphschema.record import FetchCriteria, Record
from graphschema.storage import RecordStorageInterface, StorageError

from graphport.archive import find_records_file, is_archive, unpacked
from graphport.blobs import BlobStore
from graphport.codec import decode_attribute
from graphport.config import ImportSettings
from graphport.errors import (
    CommitError,
    ContainerNotFoundError,
    FieldDecodeError,
    MalformedContainerError,
    MissingEntityListError,
    MissingObjectIdError,
)
from graphport.logging import setup_logging
from graphport.registry import RelationshipRegistry

logger = setup_logging()


class ImportPhase(str, Enum):
    """Lifecycle of one import run."""

    NOT_STARTED = "not_started"
    DECODING = "decoding"
    LINKING = "linking"
    COMMITTED = "committed"
    ABORTED = "aborted"


class ImportResult(BaseModel):
    """Result of importing one container.

    Attributes:
        records: Records created in the target store, in import order.
        phase: Final phase of the run (COMMITTED for a returned result).
        skipped_records: Serialized records that could not be imported.
        field_errors: Fields left unset because their value did not decode.
        linked_relationships: Relationship fields wired in the linking pass.
        dangling_relationships: References dropped because their target was
            never imported.
        duplicates_reused: Serialized records matched to an existing record.
        errors: Messages describing skipped records.
    """

    model_config = {"frozen": True}

    records: tuple[Record, ...] = ()
    phase: ImportPhase = ImportPhase.NOT_STARTED
    skipped_records: int = 0
    field_errors: int = 0
    linked_relationships: int = 0
    dangling_relationships: int = 0
    duplicates_reused: int = 0
    errors: tuple[str, ...] = ()


class DuplicateDetector(ABC):
    """Decides whether a serialized record already exists in the target store.

    Consulted only when an import runs with ``check_for_duplicates=True``.
    The matching policy is entirely up to the implementation.
    """

    @abstractmethod
    async def find_duplicate(
        self,
        storage: RecordStorageInterface,
        kind: EntityKind,
        values: dict[str, Any],
    ) -> Record | None:
        """Return the existing record matching the decoded `values`, or None."""


class MatchingFieldsDetector(DuplicateDetector):
    """Treats a record as a duplicate when chosen attributes all match.

    Args:
        fields_by_entity: Attribute names to compare, per entity kind. Kinds
            without an entry are never considered duplicates.
    """

    def __init__(self, fields_by_entity: dict[str, list[str]]):
        self.fields_by_entity = fields_by_entity

    async def find_duplicate(
        self,
        storage: RecordStorageInterface,
        kind: EntityKind,
        values: dict[str, Any],
    ) -> Record | None:
        fields = self.fields_by_entity.get(kind.name)
        if not fields or any(values.get(field) is None for field in fields):
            return None
        criteria = FetchCriteria(
            entity=kind.name,
            match={field: values[field] for field in fields},
            limit=1,
        )
        matches = await storage.fetch(kind.name, criteria)
        return matches[0] if matches else None


def parse_container(document: JsonValue) -> Container:
    """Validate the JSON root of records.json and build a Container.

    Entity keys that are missing or not lists are treated as empty.

    Raises:
        MalformedContainerError: If the root is not an object.
        MissingEntityListError: If `entity_names` is absent or not a list of strings.
    """
    if not isinstance(document, dict):
        raise MalformedContainerError("container root is not a JSON object")
    names = document.get(ENTITY_NAMES_KEY)
    if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
        raise MissingEntityListError(f"container has no {ENTITY_NAMES_KEY!r} list")

    container = Container(entity_names=names)
    for name in names:
        entries = document.get(name)
        if entries is None:
            continue
        if not isinstance(entries, list):
            logger.warning({"message": "Ignoring non-list record collection", "entity": name})
            continue
        container.records[name] = entries
    return container


def read_container(directory: Path) -> Container:
    """Read records.json from a container directory.

    Raises:
        ContainerNotFoundError: If there is no records.json.
        MalformedContainerError: If it is not valid JSON or its root is not an object.
        MissingEntityListError: If the entity name list is absent.
    """
    directory = Path(directory)
    records_file = find_records_file(directory) if directory.is_dir() else None
    if records_file is None:
        raise ContainerNotFoundError(f"no container found at {directory}")
    try:
        with open(records_file, "r") as f:
            document = json.load(f)
    except OSError as exc:
        raise ContainerNotFoundError(f"could not read {records_file}: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedContainerError(f"{records_file} is not valid JSON: {exc}") from exc
    return parse_container(document)


class _DecodedRecord(BaseModel):
    """Values and references of one serialized record before it exists in the store."""

    original_id: str
    values: dict[str, Any] = {}
    references: dict[str, str] = {}
    field_errors: int = 0


class _ImportRun:
    """Run-scoped state of one import call."""

    def __init__(self) -> None:
        self.phase = ImportPhase.NOT_STARTED
        self.registry = RelationshipRegistry()
        self.created: list[Record] = []
        self.skipped = 0
        self.field_errors = 0
        self.duplicates = 0
        self.errors: list[str] = []

    def enter(self, phase: ImportPhase) -> None:
        logger.debug({"message": "Import phase", "from": self.phase.value, "to": phase.value})
        self.phase = phase

    def skip(self, entity: str, index: int, reason: str) -> None:
        message = f"{entity}[{index}]: {reason}"
        logger.warning({"message": "Skipping record", "record": message})
        self.skipped += 1
        self.errors.append(message)


def _original_id(serialized: Any) -> str:
    if not isinstance(serialized, dict):
        raise MissingObjectIdError("serialized record is not a JSON object")
    original_id = serialized.get(OBJECT_ID_KEY)
    if not isinstance(original_id, str) or not original_id:
        raise MissingObjectIdError(f"record has no {OBJECT_ID_KEY!r}")
    return original_id


def decode_record(serialized: dict[str, JsonValue], kind: EntityKind, blobs: BlobStore) -> _DecodedRecord:
    """Decode every field of one serialized record without touching the store.

    Raises:
        MissingObjectIdError: If the record has no original id.
    """
    decoded = _DecodedRecord(original_id=_original_id(serialized))

    for field, value in serialized.items():
        if field == OBJECT_ID_KEY or value is None:
            continue

        relationship = kind.relationships.get(field)
        if relationship is not None:
            if relationship.to_many:
                logger.debug({"message": "Ignoring to-many relationship value", "entity": kind.name, "field": field})
                continue
            try:
                reference = RelationshipReference.model_validate(value)
            except ValidationError:
                logger.debug({"message": "Malformed relationship reference", "entity": kind.name, "field": field})
                decoded.field_errors += 1
                continue
            decoded.references[field] = reference.record_id
            continue

        attribute_kind = kind.attribute_kind(field)
        if attribute_kind is None:
            logger.debug({"message": "Ignoring unknown field", "entity": kind.name, "field": field})
            continue
        try:
            if attribute_kind is AttributeKind.BINARY:
                decoded.values[field] = blobs.resolve(value)
            else:
                decoded.values[field] = decode_attribute(value, attribute_kind)
        except FieldDecodeError as exc:
            logger.debug(
                {
                    "message": "Leaving field unset",
                    "entity": kind.name,
                    "field": field,
                    "error": str(exc),
                }
            )
            decoded.field_errors += 1

    return decoded


class GraphImporter:
    """Imports containers into one target store.

    Every call owns its own run state (original-id map, pending
    relationships, counters), so one importer can serve several imports
    one after another.

    Args:
        storage: The target store.
        duplicate_detector: Hook consulted for ``check_for_duplicates=True``.
    """

    def __init__(
        self,
        storage: RecordStorageInterface,
        duplicate_detector: DuplicateDetector | None = None,
    ):
        self.storage = storage
        self.duplicate_detector = duplicate_detector

    async def import_path(self, path: Path, check_for_duplicates: bool = False) -> ImportResult:
        """Import a container directory or ``.zip`` archive.

        Archives are unpacked into a temporary directory that is removed
        when the import finishes or fails.
        """
        path = Path(path)
        if is_archive(path):
            with unpacked(path) as directory:
                return await self._import_directory(directory, check_for_duplicates)
        return await self._import_directory(path, check_for_duplicates)

    async def _import_directory(self, directory: Path, check_for_duplicates: bool) -> ImportResult:
        container = read_container(directory)
        records_file = find_records_file(directory)
        base_directory = records_file.parent if records_file is not None else directory
        return await self.import_container(container, base_directory, check_for_duplicates)

    async def import_container(
        self,
        container: Container,
        base_directory: Path,
        check_for_duplicates: bool = False,
    ) -> ImportResult:
        """Import an already parsed container.

        Args:
            container: The parsed container.
            base_directory: Container root; blob references resolve against
                its attachments directory.
            check_for_duplicates: Consult the duplicate detector before
                creating each record.

        Returns:
            An ImportResult in phase COMMITTED.

        Raises:
            ValueError: If duplicate checking is requested without a detector.
            CommitError: If the store fails to save.
            StorageError: If the store fails while records are created or linked.

        Any other exception from the store or the duplicate detector
        propagates unchanged. Every failure rolls the store back first.
        """
        if check_for_duplicates and self.duplicate_detector is None:
            raise ValueError("check_for_duplicates requires a duplicate_detector")

        run = _ImportRun()
        blobs = BlobStore(Path(base_directory) / ATTACHMENTS_DIRNAME)
        kinds = {kind.name: kind for kind in await self.storage.entity_kinds()}

        logger.info(
            {
                "message": "Importing record graph",
                "entities": container.entity_names,
                "records": container.record_count(),
            }
        )
        try:
            run.enter(ImportPhase.DECODING)
            for entity_name in container.entity_names:
                kind = kinds.get(entity_name)
                entries = container.records_for(entity_name)
                if kind is None:
                    if entries:
                        logger.warning({"message": "Target store has no such entity kind", "entity": entity_name})
                        for index in range(len(entries)):
                            run.skip(entity_name, index, "unknown entity kind")
                    continue
                for index, serialized in enumerate(entries):
                    await self._import_record(run, kind, index, serialized, blobs, check_for_duplicates)

            run.enter(ImportPhase.LINKING)
            report = await run.registry.link(self.storage)
        except Exception:
            await self._abort(run)
            raise

        try:
            await self.storage.save()
        except StorageError as exc:
            await self._abort(run)
            raise CommitError(f"target store failed to save: {exc}") from exc
        except Exception:
            await self._abort(run)
            raise
        run.enter(ImportPhase.COMMITTED)

        result = ImportResult(
            records=tuple(run.created),
            phase=run.phase,
            skipped_records=run.skipped,
            field_errors=run.field_errors,
            linked_relationships=report.linked,
            dangling_relationships=report.dangling,
            duplicates_reused=run.duplicates,
            errors=tuple(run.errors),
        )
        logger.info(
            {
                "message": "Imported record graph",
                "entities": container.entity_names,
                "records": len(result.records),
                "skipped": result.skipped_records,
                "field_errors": result.field_errors,
                "linked": result.linked_relationships,
                "dangling": result.dangling_relationships,
            }
        )
        return result

    async def _abort(self, run: _ImportRun) -> None:
        run.enter(ImportPhase.ABORTED)
        logger.warning({"message": "Import aborted, rolling back", "created": len(run.created)})
        await self.storage.rollback()

    async def _import_record(
        self,
        run: _ImportRun,
        kind: EntityKind,
        index: int,
        serialized: Any,
        blobs: BlobStore,
        check_for_duplicates: bool,
    ) -> None:
        try:
            decoded = decode_record(serialized, kind, blobs)
        except MissingObjectIdError as exc:
            run.skip(kind.name, index, str(exc))
            return
        if decoded.original_id in run.registry:
            run.skip(kind.name, index, f"original id {decoded.original_id!r} already imported")
            return

        if check_for_duplicates:
            existing = await self.duplicate_detector.find_duplicate(  # type: ignore[union-attr]
                self.storage, kind, decoded.values
            )
            if existing is not None:
                run.registry.register(decoded.original_id, existing.runtime_id)
                run.duplicates += 1
                return

        record = await self.storage.create(kind.name)
        for field, value in decoded.values.items():
            record.set(field, value)
        for field, target in decoded.references.items():
            run.registry.defer(record.runtime_id, field, target)
        run.registry.register(decoded.original_id, record.runtime_id)
        run.field_errors += decoded.field_errors
        run.created.append(record)


async def read_into(
    storage: RecordStorageInterface,
    path: Path,
    settings: ImportSettings | None = None,
    duplicate_detector: DuplicateDetector | None = None,
) -> ImportResult:
    """Imports the container at `path` (directory or ``.zip``) into `storage`.

    This function is a convenient wrapper around `GraphImporter.import_path`.
    When `settings` turns duplicate checking on and no detector is passed, a
    `MatchingFieldsDetector` over `settings.duplicate_fields` is used.
    """
    settings = settings or ImportSettings()
    if settings.check_for_duplicates and duplicate_detector is None:
        duplicate_detector = MatchingFieldsDetector(settings.duplicate_fields)
    importer = GraphImporter(storage, duplicate_detector=duplicate_detector)
    return await importer.import_path(path, check_for_duplicates=settings.check_for_duplicates)
