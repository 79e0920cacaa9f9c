"""Tests for deferred relationship resolution."""

from graphport.registry import RelationshipRegistry
from graphport.storage.memory import InMemoryRecordStorage

from tests.conftest import make_record


class TestRegistration:
    def test_first_mapping_wins(self) -> None:
        registry = RelationshipRegistry()

        assert registry.register("old-1", "new-1") is True
        assert registry.register("old-1", "new-2") is False
        assert registry.resolve_id("old-1") == "new-1"
        assert "old-1" in registry
        assert len(registry) == 1

    def test_unknown_id_resolves_to_none(self) -> None:
        assert RelationshipRegistry().resolve_id("nope") is None

    def test_defer_keeps_order(self) -> None:
        registry = RelationshipRegistry()
        registry.defer("a", "owner", "x")
        registry.defer("b", "bestFriend", "y")

        assert [p.from_runtime_id for p in registry.pending] == ["a", "b"]
        assert registry.pending[1].field_name == "bestFriend"
        assert registry.pending[1].to_original_id == "y"


class TestLinking:
    async def test_links_forward_and_backward_references(self, storage: InMemoryRecordStorage) -> None:
        """Targets created after their source are wired just like earlier ones."""
        registry = RelationshipRegistry()
        bo = await make_record(storage, "Person", name="Bo")
        ann = await make_record(storage, "Person", name="Ann")
        rex = await make_record(storage, "Pet", name="Rex")
        registry.defer(bo.runtime_id, "bestFriend", "orig-ann")
        registry.defer(rex.runtime_id, "owner", "orig-bo")
        registry.register("orig-bo", bo.runtime_id)
        registry.register("orig-ann", ann.runtime_id)

        report = await registry.link(storage)

        assert report.linked == 2
        assert report.dangling == 0
        assert bo.get("bestFriend") == ann.runtime_id
        assert rex.get("owner") == bo.runtime_id

    async def test_dangling_references_are_dropped(self, storage: InMemoryRecordStorage) -> None:
        registry = RelationshipRegistry()
        rex = await make_record(storage, "Pet", name="Rex")
        registry.defer(rex.runtime_id, "owner", "never-imported")

        report = await registry.link(storage)

        assert report.linked == 0
        assert report.dangling == 1
        assert rex.get("owner") is None

    async def test_self_reference(self, storage: InMemoryRecordStorage) -> None:
        registry = RelationshipRegistry()
        narcissus = await make_record(storage, "Person", name="Narcissus")
        registry.register("orig-n", narcissus.runtime_id)
        registry.defer(narcissus.runtime_id, "bestFriend", "orig-n")

        await registry.link(storage)

        assert narcissus.get("bestFriend") == narcissus.runtime_id

    async def test_registries_are_independent(self) -> None:
        first = RelationshipRegistry()
        second = RelationshipRegistry()
        first.register("a", "1")
        first.defer("1", "owner", "b")

        assert "a" not in second
        assert second.pending == ()
