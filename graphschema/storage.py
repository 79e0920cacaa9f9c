"""Storage interface consumed by the exporter and importer.

The persistence layer itself is out of scope for graphport: record lookup,
creation, attribute access, save and rollback all belong to the store. This
module names the small capability surface the core relies on so that any
backend (an ORM session, a document database, the bundled in-memory store)
can be plugged in.

All methods are async-first to support non-blocking database drivers. The
core awaits them one at a time and never issues concurrent calls.
"""

from abc import ABC, abstractmethod

from graphschema.entity import EntityKind
from graphschema.record import FetchCriteria, Record


class StorageError(Exception):
    """Raised by a store when a fetch, create or save cannot be completed."""


class RecordStorageInterface(ABC):
    """Abstract interface for a store of typed records.

    Implementations must assign every record a RuntimeID that is unique
    across all entity kinds of the store, since exported relationship
    references are resolved by that id alone.

    Records created with `create` are staged: they are visible to `lookup`
    and `fetch` immediately, but only made durable by `save`. `rollback`
    discards everything staged since the last successful save.
    """

    @abstractmethod
    async def entity_kinds(self) -> list[EntityKind]:
        """Return every entity kind of the store, in a stable declaration order."""

    @abstractmethod
    async def fetch(self, entity: str, criteria: FetchCriteria | None = None) -> list[Record]:
        """Return the records of `entity`, optionally narrowed by `criteria`.

        Raises:
            StorageError: If `entity` is unknown or the backend fails.
        """

    @abstractmethod
    async def create(self, entity: str) -> Record:
        """Create and stage an empty record of `entity`.

        Raises:
            StorageError: If `entity` is unknown to the store.
        """

    @abstractmethod
    async def lookup(self, runtime_id: str) -> Record | None:
        """Return the record with `runtime_id`, or None if not found."""

    @abstractmethod
    async def save(self) -> None:
        """Persist every staged change as one operation.

        Raises:
            StorageError: If the save fails. Nothing is guaranteed persisted.
        """

    @abstractmethod
    async def rollback(self) -> None:
        """Discard every change staged since the last successful save."""

    async def entity_kind(self, name: str) -> EntityKind | None:
        """Return the entity kind called `name`, or None."""
        for kind in await self.entity_kinds():
            if kind.name == name:
                return kind
        return None
