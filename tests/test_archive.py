"""Tests for packing and unpacking container archives."""

import zipfile
from pathlib import Path

import pytest

from graphbundle import RECORDS_FILENAME
from graphport.archive import find_records_file, is_archive, pack, unpacked
from graphport.errors import ContainerNotFoundError, MalformedContainerError


@pytest.fixture
def container_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "container"
    (directory / "attachments").mkdir(parents=True)
    (directory / RECORDS_FILENAME).write_text('{"entity_names": []}')
    (directory / "attachments" / "A.dat").write_bytes(bytes(range(256)))
    return directory


def test_is_archive() -> None:
    assert is_archive(Path("graph.zip"))
    assert is_archive(Path("GRAPH.ZIP"))
    assert not is_archive(Path("graph"))
    assert not is_archive(Path("records.json"))


class TestPack:
    def test_members_are_relative_to_the_container_root(self, container_dir: Path, tmp_path: Path) -> None:
        archive = pack(container_dir, tmp_path / "out" / "graph.zip")

        with zipfile.ZipFile(archive) as zf:
            names = set(zf.namelist())
            assert {RECORDS_FILENAME, "attachments/", "attachments/A.dat"} <= names
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist() if not info.is_dir())

    def test_round_trip_is_byte_identical(self, container_dir: Path, tmp_path: Path) -> None:
        archive = pack(container_dir, tmp_path / "graph.zip")

        with unpacked(archive) as root:
            assert (root / RECORDS_FILENAME).read_bytes() == (container_dir / RECORDS_FILENAME).read_bytes()
            assert (root / "attachments" / "A.dat").read_bytes() == bytes(range(256))

    def test_existing_archive_is_replaced(self, container_dir: Path, tmp_path: Path) -> None:
        archive = tmp_path / "graph.zip"
        archive.write_text("stale")

        pack(container_dir, archive)

        assert zipfile.is_zipfile(archive)


class TestUnpacked:
    def test_temporary_directory_is_removed(self, container_dir: Path, tmp_path: Path) -> None:
        archive = pack(container_dir, tmp_path / "graph.zip")

        with unpacked(archive) as root:
            extracted = root
            assert extracted.exists()

        assert not extracted.exists()

    def test_temporary_directory_is_removed_on_error(self, container_dir: Path, tmp_path: Path) -> None:
        archive = pack(container_dir, tmp_path / "graph.zip")

        with pytest.raises(RuntimeError):
            with unpacked(archive) as root:
                extracted = root
                raise RuntimeError("import failed")

        assert not extracted.exists()

    def test_missing_archive(self, tmp_path: Path) -> None:
        with pytest.raises(ContainerNotFoundError):
            with unpacked(tmp_path / "missing.zip"):
                pass

    def test_not_a_zip(self, tmp_path: Path) -> None:
        bogus = tmp_path / "bogus.zip"
        bogus.write_text("this is not a zip file")

        with pytest.raises(MalformedContainerError):
            with unpacked(bogus):
                pass

    def test_archive_without_records_file(self, tmp_path: Path) -> None:
        archive = tmp_path / "empty.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("notes.txt", "nothing here")

        with pytest.raises(ContainerNotFoundError):
            with unpacked(archive):
                pass

    def test_escaping_member_is_rejected(self, tmp_path: Path) -> None:
        archive = tmp_path / "evil.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(RECORDS_FILENAME, "{}")
            zf.writestr("../outside.txt", "gotcha")

        with pytest.raises(MalformedContainerError):
            with unpacked(archive):
                pass
        assert not (tmp_path.parent / "outside.txt").exists()

    def test_container_in_enclosing_folder(self, tmp_path: Path) -> None:
        archive = tmp_path / "nested.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(f"graph/{RECORDS_FILENAME}", '{"entity_names": []}')
            zf.writestr("graph/attachments/B.dat", b"blob")

        with unpacked(archive) as root:
            assert root.name == "graph"
            assert (root / "attachments" / "B.dat").read_bytes() == b"blob"


class TestFindRecordsFile:
    def test_direct(self, container_dir: Path) -> None:
        assert find_records_file(container_dir) == container_dir / RECORDS_FILENAME

    def test_one_level_down(self, container_dir: Path) -> None:
        assert find_records_file(container_dir.parent) == container_dir / RECORDS_FILENAME

    def test_absent(self, tmp_path: Path) -> None:
        assert find_records_file(tmp_path) is None
