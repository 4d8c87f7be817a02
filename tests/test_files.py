"""
File operation tests: atomic writes, safe archive members and dispersal.
"""

import os

import pytest

from depotfetch.download import files
from depotfetch.download.files import (
    ArchiveDisperser,
    _is_safe_archive_member,
    atomic_write_text,
    read_text,
    safe_extract_path,
    write_bytes,
)
from depotfetch.download.interfaces import DispersalCounts, DispersalTargets
from depotfetch.exceptions import CorruptedArchiveError, ExtractionError, FileSystemError

pytestmark = [pytest.mark.unit, pytest.mark.file_operations]


@pytest.fixture
def targets(steam_config):
    return DispersalTargets.from_steam_config(steam_config)


@pytest.fixture
def scratch(tmp_path, mocker):
    """Pin the disperser scratch directory to a known path."""
    scratch_dir = tmp_path / "scratch"
    scratch_dir.mkdir()
    mocker.patch.object(files.tempfile, "mkdtemp", return_value=str(scratch_dir))
    return scratch_dir


class TestArchiveDisperser:
    def test_counts_and_destinations(self, targets, zip_factory):
        archive = zip_factory(
            {
                "a.lua": "-- a",
                "b.manifest": b"\x00\x01",
                "c.bin": b"\x02",
                "d_manifest.lua": "-- d",
            }
        )

        counts = ArchiveDisperser().disperse(archive, targets)

        assert (counts.lua, counts.manifest, counts.bin) == (2, 1, 1)
        assert counts.copied == 5
        assert sorted(os.listdir(targets.plugin_dir)) == ["a.lua", "d_manifest.lua"]
        assert sorted(os.listdir(targets.depotcache_dir)) == ["b.manifest", "d_manifest.lua"]
        assert os.listdir(targets.stats_dir) == ["c.bin"]

    def test_nested_entries_and_directory_markers(self, targets, zip_factory):
        archive = zip_factory(
            {
                "owner-repo-abc/": b"",
                "owner-repo-abc/sub/": b"",
                "owner-repo-abc/sub/730.lua": "addappid(730)",
                "owner-repo-abc/731_123.manifest": b"m",
            }
        )

        counts = ArchiveDisperser().disperse(archive, targets)

        assert counts == DispersalCounts(lua=1, manifest=1, bin=0, copied=2)
        assert (targets.plugin_dir / "730.lua").read_text() == "addappid(730)"
        assert (targets.depotcache_dir / "731_123.manifest").read_bytes() == b"m"

    def test_matching_is_case_insensitive(self, targets, zip_factory):
        archive = zip_factory({"A.LUA": "x", "STATS.BIN": b"x", "Depot.MANIFEST": b"x"})

        counts = ArchiveDisperser().disperse(archive, targets)

        assert (counts.lua, counts.manifest, counts.bin) == (1, 1, 1)

    def test_unmatched_files_are_ignored(self, targets, zip_factory):
        counts = ArchiveDisperser().disperse(zip_factory({"readme.md": "hi"}), targets)

        assert counts == DispersalCounts()

    def test_creates_missing_destination_directories(self, tmp_path, zip_factory):
        targets = DispersalTargets.from_steam_config(tmp_path / "fresh")

        ArchiveDisperser().disperse(zip_factory({"a.lua": "x"}), targets)

        assert (targets.plugin_dir / "a.lua").is_file()

    def test_accepts_archive_path(self, targets, zip_factory, tmp_path):
        archive_path = tmp_path / "bundle.zip"
        archive_path.write_bytes(zip_factory({"x.bin": b"1"}))

        counts = ArchiveDisperser().disperse(archive_path, targets)

        assert counts.bin == 1

    def test_scratch_directory_removed_on_success(self, targets, zip_factory, scratch):
        ArchiveDisperser().disperse(zip_factory({"a.lua": "x"}), targets)

        assert not scratch.exists()

    def test_corrupt_archive_raises_and_cleans_up(self, targets, scratch):
        with pytest.raises(CorruptedArchiveError):
            ArchiveDisperser().disperse(b"this is not a zip", targets)

        assert not scratch.exists()

    def test_damaged_member_data_raises_extraction_error(self, targets, damaged_zip_factory, scratch):
        with pytest.raises(ExtractionError):
            ArchiveDisperser().disperse(damaged_zip_factory(), targets)

        assert not scratch.exists()
        assert os.listdir(targets.plugin_dir) == []

    def test_unsafe_members_are_skipped(self, targets, zip_factory, tmp_path):
        archive = zip_factory({"../evil.lua": "x", "good.lua": "y"})

        counts = ArchiveDisperser().disperse(archive, targets)

        assert counts.lua == 1
        assert os.listdir(targets.plugin_dir) == ["good.lua"]


class TestSafeArchiveMember:
    @pytest.mark.parametrize(
        "name",
        ["", "/etc/passwd", "\\windows", "../x", "a/../../x", "a\\..\\..\\x", "bad\x00name"],
    )
    def test_unsafe_names(self, name):
        assert _is_safe_archive_member(name) is False

    @pytest.mark.parametrize("name", ["a.lua", "dir/sub/b.bin", "dir/", "a/./b"])
    def test_safe_names(self, name):
        assert _is_safe_archive_member(name) is True

    def test_safe_extract_path_rejects_escape(self, tmp_path):
        with pytest.raises(ValueError):
            safe_extract_path(str(tmp_path), "../outside")

    def test_safe_extract_path_inside_base(self, tmp_path):
        resolved = safe_extract_path(str(tmp_path), "a/b.txt")
        assert resolved == os.path.join(os.path.realpath(tmp_path), "a", "b.txt")


class TestWrites:
    def test_atomic_write_replaces_content_and_keeps_newlines(self, tmp_path):
        target = tmp_path / "file.lua"
        target.write_text("old")

        atomic_write_text(target, "line1\r\nline2\r\n")

        assert target.read_bytes() == b"line1\r\nline2\r\n"
        assert [p.name for p in tmp_path.iterdir()] == ["file.lua"]

    def test_atomic_write_missing_directory_raises(self, tmp_path):
        with pytest.raises(FileSystemError):
            atomic_write_text(tmp_path / "missing" / "file.lua", "x")

    def test_write_bytes_creates_parents(self, tmp_path):
        target = write_bytes(tmp_path / "a" / "b" / "c.bin", b"data")

        assert target.read_bytes() == b"data"

    def test_write_bytes_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        with pytest.raises(FileSystemError) as exc_info:
            write_bytes(blocker / "c.bin", b"data")
        assert exc_info.value.path == str(blocker / "c.bin")

    def test_read_text_missing_file_raises(self, tmp_path):
        with pytest.raises(FileSystemError):
            read_text(tmp_path / "nope.lua")
