"""In-memory record storage for testing and development.

This module provides a dictionary-based implementation of
`RecordStorageInterface` that keeps all records in memory. It is suitable for:

- **Unit testing**: Fast, isolated export/import tests without a database
- **Development**: Quick iteration on container formats
- **Small datasets**: Demos and examples with limited data

**Not recommended for production** due to:
- No persistence (data is lost when the process exits)
- No concurrency control (not safe for multi-process access)
- O(n) fetch operations (no indexing)

RuntimeIDs look like ``x-memory://<store-uuid>/<Entity>/p<n>``, so ids from
two different stores never collide.
"""

import uuid
from typing import Any, Sequence

from graphschema.entity import EntityKind
from graphschema.record import FetchCriteria, Record
from graphschema.storage import RecordStorageInterface, StorageError


def _matches(record: Record, match: dict[str, Any]) -> bool:
    return all(record.get(field) == value for field, value in match.items())


def _sort_key(field: str):
    def key(record: Record) -> tuple[int, Any]:
        value = record.get(field)
        return (0, 0) if value is None else (1, value)

    return key


class InMemoryRecordStorage(RecordStorageInterface):
    """In-memory record storage keyed by RuntimeID.

    Created records are staged until `save()`; `rollback()` drops them.
    Both staged and saved records are visible to `fetch` and `lookup`.

    Thread safety: Not thread-safe.

    Example:
        ```python
        storage = InMemoryRecordStorage([person_kind])
        ann = await storage.create("Person")
        ann.set("name", "Ann")
        await storage.save()
        ```
    """

    def __init__(self, entity_kinds: Sequence[EntityKind]) -> None:
        """Initialize an empty store declaring `entity_kinds` in order."""
        self._kinds: dict[str, EntityKind] = {}
        for kind in entity_kinds:
            if kind.name in self._kinds:
                raise ValueError(f"duplicate entity kind: {kind.name!r}")
            self._kinds[kind.name] = kind
        self.store_id = uuid.uuid4().hex
        self._records: dict[str, Record] = {}
        self._staged: dict[str, Record] = {}
        self._counter = 0
        self.save_count = 0

    def _check_kind(self, entity: str) -> EntityKind:
        kind = self._kinds.get(entity)
        if kind is None:
            raise StorageError(f"unknown entity kind: {entity!r}")
        return kind

    async def entity_kinds(self) -> list[EntityKind]:
        return list(self._kinds.values())

    async def fetch(self, entity: str, criteria: FetchCriteria | None = None) -> list[Record]:
        """Returns records of `entity` in creation order, narrowed by `criteria`.

        Raises:
            StorageError: If `entity` is unknown, or `criteria` names another kind.
        """
        self._check_kind(entity)
        if criteria is not None and criteria.entity != entity:
            raise StorageError(f"criteria for {criteria.entity!r} used to fetch {entity!r}")

        results = [r for r in self._all_records() if r.entity == entity]
        if criteria is None:
            return results
        results = [r for r in results if _matches(r, criteria.match)]
        if criteria.sort_by is not None:
            try:
                results.sort(key=_sort_key(criteria.sort_by))
            except TypeError as exc:
                raise StorageError(f"cannot sort {entity!r} on {criteria.sort_by!r}: {exc}") from exc
        if criteria.limit is not None:
            results = results[: criteria.limit]
        return results

    async def create(self, entity: str) -> Record:
        self._check_kind(entity)
        self._counter += 1
        record = Record(
            runtime_id=f"x-memory://{self.store_id}/{entity}/p{self._counter}",
            entity=entity,
        )
        self._staged[record.runtime_id] = record
        return record

    async def lookup(self, runtime_id: str) -> Record | None:
        if runtime_id in self._staged:
            return self._staged[runtime_id]
        return self._records.get(runtime_id)

    async def save(self) -> None:
        self._records.update(self._staged)
        self._staged.clear()
        self.save_count += 1

    async def rollback(self) -> None:
        self._staged.clear()

    async def count(self, entity: str | None = None) -> int:
        """Return the number of saved records, optionally of one kind."""
        if entity is None:
            return len(self._records)
        return sum(1 for r in self._records.values() if r.entity == entity)

    @property
    def staged_count(self) -> int:
        return len(self._staged)

    def _all_records(self) -> list[Record]:
        return list(self._records.values()) + list(self._staged.values())
