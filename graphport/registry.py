"""Deferred relationship wiring for one import run.

Relationship references in a container point at original ids, and the
target record may appear later in the document than the record referring
to it (or the graph may be cyclic). The importer therefore records every
reference as a `PendingRelationship` while it instantiates records, and
only wires them once every record exists and the original-id -> RuntimeID
map is complete.

A registry belongs to exactly one import call; it is never shared.
"""

from pydantic import BaseModel

from graphschema.storage import RecordStorageInterface

from graphport.logging import setup_logging

logger = setup_logging()


class PendingRelationship(BaseModel, frozen=True):
    """A to-one relationship waiting for its target to be imported."""

    from_runtime_id: str
    to_original_id: str
    field_name: str


class LinkReport(BaseModel, frozen=True):
    """Outcome of the linking pass."""

    linked: int = 0
    dangling: int = 0


class RelationshipRegistry:
    """Original-id map plus the list of relationships still to wire."""

    def __init__(self) -> None:
        self._imported: dict[str, str] = {}
        self._pending: list[PendingRelationship] = []

    def __len__(self) -> int:
        return len(self._imported)

    def __contains__(self, original_id: object) -> bool:
        return original_id in self._imported

    @property
    def pending(self) -> tuple[PendingRelationship, ...]:
        return tuple(self._pending)

    def register(self, original_id: str, runtime_id: str) -> bool:
        """Map `original_id` to the RuntimeID of its new record.

        Returns False, keeping the first mapping, if `original_id` was
        already registered in this run.
        """
        if original_id in self._imported:
            return False
        self._imported[original_id] = runtime_id
        return True

    def resolve_id(self, original_id: str) -> str | None:
        return self._imported.get(original_id)

    def defer(self, from_runtime_id: str, field_name: str, to_original_id: str) -> PendingRelationship:
        pending = PendingRelationship(
            from_runtime_id=from_runtime_id,
            to_original_id=to_original_id,
            field_name=field_name,
        )
        self._pending.append(pending)
        return pending

    async def link(self, storage: RecordStorageInterface) -> LinkReport:
        """Wire every pending relationship whose target was imported.

        References whose target original id was never registered (excluded,
        skipped, or simply absent from the container) are dropped.
        """
        linked = 0
        dangling = 0
        for pending in self._pending:
            target_id = self._imported.get(pending.to_original_id)
            source = await storage.lookup(pending.from_runtime_id)
            if target_id is None or source is None:
                logger.debug(
                    {
                        "message": "Dropping dangling relationship",
                        "field": pending.field_name,
                        "target": pending.to_original_id,
                    }
                )
                dangling += 1
                continue
            source.set(pending.field_name, target_id)
            linked += 1
        return LinkReport(linked=linked, dangling=dangling)
