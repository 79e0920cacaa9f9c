"""Test fixtures and a small two-kind schema.

This module provides:
- A `Person`/`Pet` schema exercising every attribute kind, a to-one self
  relationship, a cross-kind to-one relationship, a to-many relationship and
  an attribute of an unsupported kind
- Pytest fixtures for empty and populated in-memory stores
- Helper factories for creating records and exporting/importing containers

The populated store holds the canonical scenario: Ann, Bo (best friend Ann)
and Rex the pet (owned by Bo).
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from graphschema.entity import EntityKind, RelationshipDescription
from graphschema.record import Record
from graphport.storage.memory import InMemoryRecordStorage

PERSON = EntityKind(
    name="Person",
    attributes={
        "name": "string",
        "active": "bool",
        "age": "integer",
        "height": "float",
        "balance": "decimal",
        "token": "uuid",
        "homepage": "uri",
        "born": "date",
        "avatar": "binary",
        "scratch": "transformable",
    },
    relationships={
        "bestFriend": RelationshipDescription(name="bestFriend", destination="Person"),
        "pets": RelationshipDescription(name="pets", destination="Pet", to_many=True),
    },
)

PET = EntityKind(
    name="Pet",
    attributes={"name": "string", "photo": "binary"},
    relationships={
        "owner": RelationshipDescription(name="owner", destination="Person"),
    },
)

SCHEMA = [PERSON, PET]


def make_storage() -> InMemoryRecordStorage:
    """Return an empty store declaring the Person/Pet schema."""
    return InMemoryRecordStorage(SCHEMA)


async def make_record(storage: InMemoryRecordStorage, entity: str, **values: Any) -> Record:
    """Create a record of `entity` with the given field values."""
    record = await storage.create(entity)
    for field, value in values.items():
        record.set(field, value)
    return record


async def populate(storage: InMemoryRecordStorage) -> dict[str, Record]:
    """Create and save the Ann / Bo / Rex scenario; return records by name."""
    ann = await make_record(
        storage,
        "Person",
        name="Ann",
        active=True,
        age=34,
        height=1.72,
        balance=Decimal("12.50"),
        token=uuid.UUID("6f1c2a7e-8d43-4b1f-9c5e-2f4a9d0b7e31"),
        homepage="https://example.org/ann",
        born=datetime(1990, 5, 17, 8, 30, 15, 250000, tzinfo=timezone.utc),
        avatar=b"\x89PNG" + bytes(range(60)),
        scratch=object(),
    )
    bo = await make_record(storage, "Person", name="Bo", active=False, age=29, bestFriend=ann.runtime_id)
    rex = await make_record(storage, "Pet", name="Rex", owner=bo.runtime_id, photo=b"woof")
    bo.set("pets", [rex.runtime_id])
    await storage.save()
    return {"Ann": ann, "Bo": bo, "Rex": rex}


async def find_by_name(storage: InMemoryRecordStorage, entity: str, name: str) -> Record:
    matches = [r for r in await storage.fetch(entity) if r.get("name") == name]
    assert len(matches) == 1, f"expected one {entity} named {name!r}, got {len(matches)}"
    return matches[0]


@pytest.fixture
def storage() -> InMemoryRecordStorage:
    """Empty source store."""
    return make_storage()


@pytest.fixture
def target() -> InMemoryRecordStorage:
    """Empty target store with the same schema as the source."""
    return make_storage()


@pytest.fixture
async def populated(storage: InMemoryRecordStorage) -> dict[str, Record]:
    """Source store populated with Ann, Bo and Rex."""
    return await populate(storage)


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    return tmp_path / "export"
