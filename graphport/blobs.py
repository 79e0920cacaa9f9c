"""Externalization of binary attribute values.

Binary data is either inlined in `records.json` as base64 or, when a size
threshold is configured and exceeded, written to its own file in the
container's attachments directory and referenced by name.

Failure policy differs by side. On export, a failed write is a structural
problem and raises `ExportWriteError`. On import, a missing file or bad
base64 only costs one field and raises `FieldDecodeError`.
"""

import base64
import binascii
import uuid
from pathlib import Path

from pydantic import JsonValue, ValidationError

from graphbundle import BLOB_EXTENSION, BlobReference

from graphport.errors import ExportWriteError, FieldDecodeError


class BlobStore:
    """Reads and writes blobs for one container's attachments directory.

    Args:
        attachments_dir: The container's attachments directory.
        threshold: Size in bytes above which data is written to a file.
            None means never externalize.
    """

    def __init__(self, attachments_dir: Path, threshold: int | None = None):
        if threshold is not None and threshold < 0:
            raise ValueError("blob threshold must be >= 0")
        self.attachments_dir = Path(attachments_dir)
        self.threshold = threshold
        self.files_written = 0

    def should_externalize(self, data: bytes) -> bool:
        return self.threshold is not None and len(data) > self.threshold

    def externalize(self, data: bytes) -> JsonValue:
        """Return the JSON value to store for `data`, writing a file if needed.

        Raises:
            ExportWriteError: If the blob file cannot be written.
        """
        if not self.should_externalize(data):
            return base64.b64encode(data).decode("ascii")

        filename = str(uuid.uuid4()).upper() + BLOB_EXTENSION
        try:
            (self.attachments_dir / filename).write_bytes(data)
        except OSError as exc:
            raise ExportWriteError(f"could not write blob {filename}: {exc}") from exc
        self.files_written += 1
        return BlobReference(data=filename).model_dump()

    def resolve(self, value: JsonValue) -> bytes:
        """Return the bytes for an inline base64 string or a blob reference.

        Raises:
            FieldDecodeError: If the file is missing or outside the attachments
                directory, or the base64 text is malformed.
        """
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise FieldDecodeError("malformed base64 data") from exc

        try:
            reference = BlobReference.model_validate(value)
        except ValidationError as exc:
            raise FieldDecodeError("binary value is neither base64 nor a blob reference") from exc
        return self._read(reference.data)

    def _read(self, filename: str) -> bytes:
        root = self.attachments_dir.resolve()
        path = (root / filename).resolve()
        if path.parent != root:
            raise FieldDecodeError(f"blob reference escapes the attachments directory: {filename!r}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FieldDecodeError(f"blob file unreadable: {filename!r}") from exc
