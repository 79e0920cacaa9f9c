"""Storage implementations for graphport."""

from graphschema.storage import RecordStorageInterface, StorageError
from graphport.storage.memory import InMemoryRecordStorage

__all__ = [
    "RecordStorageInterface",
    "StorageError",
    "InMemoryRecordStorage",
]
