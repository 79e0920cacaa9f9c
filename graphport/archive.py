"""Packing a container directory into a single zip archive and back.

Archives hold the container's files relative to its root (no enclosing
folder), deflate-compressed. Unpacking goes into a temporary directory whose
lifetime is bound to a context manager, so it is removed on every exit path,
including a failed import.
"""

import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Iterator

from graphbundle import RECORDS_FILENAME

from graphport.errors import ContainerNotFoundError, ExportWriteError, MalformedContainerError
from graphport.logging import setup_logging

ARCHIVE_SUFFIX = ".zip"

logger = setup_logging()


def is_archive(path: Path) -> bool:
    return Path(path).suffix.lower() == ARCHIVE_SUFFIX


def pack(directory: Path, archive_path: Path) -> Path:
    """Write every file under `directory` into a zip at `archive_path`.

    An existing file at `archive_path` is replaced.

    Raises:
        ExportWriteError: If the archive cannot be written.
    """
    directory = Path(directory)
    archive_path = Path(archive_path)
    try:
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for source_file in sorted(directory.rglob("*")):
                arcname = source_file.relative_to(directory).as_posix()
                if source_file.is_dir():
                    zf.writestr(arcname + "/", b"")
                else:
                    zf.write(source_file, arcname)
    except OSError as exc:
        raise ExportWriteError(f"could not write archive {archive_path}: {exc}") from exc
    logger.debug({"message": "Packed container", "archive": str(archive_path)})
    return archive_path


def _check_members(zf: zipfile.ZipFile) -> None:
    for name in zf.namelist():
        member = PurePosixPath(name)
        if member.is_absolute() or ".." in member.parts:
            raise MalformedContainerError(f"archive member escapes the container: {name!r}")


def find_records_file(search_dir: Path) -> Path | None:
    """Find records.json in a directory (possibly in a subdirectory)."""
    direct = search_dir / RECORDS_FILENAME
    if direct.exists():
        return direct

    for subdir in sorted(search_dir.iterdir()):
        if subdir.is_dir():
            nested = subdir / RECORDS_FILENAME
            if nested.exists():
                return nested

    return None


@contextmanager
def unpacked(archive_path: Path) -> Iterator[Path]:
    """Extract `archive_path` and yield the container root inside it.

    Raises:
        ContainerNotFoundError: If the archive is missing or holds no records.json.
        MalformedContainerError: If the file is not a zip archive or a
            member would land outside the extraction directory.
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise ContainerNotFoundError(f"archive not found: {archive_path}")

    tmpdir = Path(tempfile.mkdtemp(prefix="graphport-"))
    try:
        try:
            with zipfile.ZipFile(archive_path, "r") as zf:
                _check_members(zf)
                zf.extractall(tmpdir)
        except zipfile.BadZipFile as exc:
            raise MalformedContainerError(f"not a zip archive: {archive_path}") from exc

        records_file = find_records_file(tmpdir)
        if records_file is None:
            raise ContainerNotFoundError(f"no {RECORDS_FILENAME} in archive {archive_path}")
        yield records_file.parent
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)
