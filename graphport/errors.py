"""Exception hierarchy for export and import runs.

Errors fall into four tiers:

- **Structural** errors abort the whole run and reach the caller:
  `ContainerError` and its subclasses, `ExportWriteError`, `CommitError`,
  `DuplicateRecordError`.
- **Per-record** errors (`MissingObjectIdError`) skip one serialized record.
- **Per-field** errors (`FieldDecodeError`) leave one field unset.
- Dangling relationship references are not errors at all; they are counted
  and dropped.

The per-record and per-field exceptions are raised and caught inside the
importer; they only escape when the codec or blob store is used directly.
"""


class GraphPortError(Exception):
    """Base class for all graphport errors."""


class ContainerError(GraphPortError):
    """The container is unusable."""


class ContainerNotFoundError(ContainerError):
    """No `records.json` was found at the given location."""


class MalformedContainerError(ContainerError):
    """The container could not be parsed, or its JSON root is not an object."""


class MissingEntityListError(ContainerError):
    """The container has no usable `entity_names` list."""


class ExportWriteError(GraphPortError):
    """Writing the export directory, the JSON document or a blob failed."""


class CommitError(GraphPortError):
    """The target store failed to save the imported records."""


class DuplicateRecordError(GraphPortError):
    """Two exported records share one original id."""


class MissingObjectIdError(GraphPortError):
    """A serialized record has no original id."""


class FieldDecodeError(GraphPortError):
    """A single field value could not be encoded or decoded."""
