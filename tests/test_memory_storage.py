"""Tests for the in-memory record store used by the export/import tests."""

import pytest

from graphschema.entity import EntityKind
from graphschema.record import FetchCriteria
from graphschema.storage import StorageError
from graphport.storage.memory import InMemoryRecordStorage

from tests.conftest import PERSON, make_record, make_storage


class TestSchema:
    async def test_entity_kinds_keep_declaration_order(self, storage: InMemoryRecordStorage) -> None:
        assert [kind.name for kind in await storage.entity_kinds()] == ["Person", "Pet"]

    async def test_entity_kind_lookup(self, storage: InMemoryRecordStorage) -> None:
        assert await storage.entity_kind("Person") == PERSON
        assert await storage.entity_kind("Car") is None

    def test_duplicate_kind_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryRecordStorage([PERSON, EntityKind(name="Person")])


class TestStaging:
    async def test_created_records_are_staged_until_save(self, storage: InMemoryRecordStorage) -> None:
        record = await make_record(storage, "Person", name="Ann")

        assert storage.staged_count == 1
        assert await storage.count() == 0
        assert await storage.lookup(record.runtime_id) is record

        await storage.save()

        assert storage.staged_count == 0
        assert await storage.count("Person") == 1
        assert await storage.lookup(record.runtime_id) is record

    async def test_rollback_drops_staged_records(self, storage: InMemoryRecordStorage) -> None:
        kept = await make_record(storage, "Person", name="Kept")
        await storage.save()
        dropped = await make_record(storage, "Person", name="Dropped")

        await storage.rollback()

        assert await storage.lookup(dropped.runtime_id) is None
        assert await storage.lookup(kept.runtime_id) is kept
        assert [r.get("name") for r in await storage.fetch("Person")] == ["Kept"]

    async def test_runtime_ids_differ_between_stores(self) -> None:
        first = await make_storage().create("Person")
        second = await make_storage().create("Person")

        assert first.runtime_id != second.runtime_id

    async def test_create_unknown_kind(self, storage: InMemoryRecordStorage) -> None:
        with pytest.raises(StorageError):
            await storage.create("Car")


class TestRecordFields:
    async def test_setting_none_unsets(self, storage: InMemoryRecordStorage) -> None:
        record = await make_record(storage, "Person", name="Ann", age=34)

        record.set("age", None)

        assert record.is_set("name")
        assert not record.is_set("age")
        assert "age" not in record.values

    async def test_falsy_values_count_as_set(self, storage: InMemoryRecordStorage) -> None:
        record = await make_record(storage, "Person", active=False, age=0, name="")

        assert all(record.is_set(field) for field in ("active", "age", "name"))


class TestFetch:
    @pytest.fixture
    async def people(self, storage: InMemoryRecordStorage) -> InMemoryRecordStorage:
        await make_record(storage, "Person", name="Cy", age=40, active=True)
        await make_record(storage, "Person", name="Ann", age=34, active=True)
        await make_record(storage, "Person", name="Bo", active=False)
        await make_record(storage, "Pet", name="Rex")
        return storage

    async def test_fetch_all_of_one_kind(self, people: InMemoryRecordStorage) -> None:
        assert [r.get("name") for r in await people.fetch("Person")] == ["Cy", "Ann", "Bo"]

    async def test_match(self, people: InMemoryRecordStorage) -> None:
        criteria = FetchCriteria(entity="Person", match={"active": True})

        assert [r.get("name") for r in await people.fetch("Person", criteria)] == ["Cy", "Ann"]

    async def test_sort_puts_unset_values_first(self, people: InMemoryRecordStorage) -> None:
        criteria = FetchCriteria(entity="Person", sort_by="age")

        assert [r.get("name") for r in await people.fetch("Person", criteria)] == ["Bo", "Ann", "Cy"]

    async def test_limit(self, people: InMemoryRecordStorage) -> None:
        criteria = FetchCriteria(entity="Person", sort_by="name", limit=2)

        assert [r.get("name") for r in await people.fetch("Person", criteria)] == ["Ann", "Bo"]

    async def test_unsortable_values(self, people: InMemoryRecordStorage) -> None:
        (await people.fetch("Person"))[0].set("age", "forty")
        criteria = FetchCriteria(entity="Person", sort_by="age")

        with pytest.raises(StorageError):
            await people.fetch("Person", criteria)

    async def test_unknown_kind(self, people: InMemoryRecordStorage) -> None:
        with pytest.raises(StorageError):
            await people.fetch("Car")

    async def test_criteria_for_another_kind(self, people: InMemoryRecordStorage) -> None:
        with pytest.raises(StorageError):
            await people.fetch("Person", FetchCriteria(entity="Pet"))
