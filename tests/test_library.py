"""
Library listing and removal tests.
"""

import pytest

from depotfetch.download.interfaces import DispersalTargets
from depotfetch.download.library import (
    list_downloaded_files,
    list_library,
    remove_library_entry,
)
from depotfetch.exceptions import FileSystemError, ValidationError

pytestmark = [pytest.mark.unit, pytest.mark.file_operations]


@pytest.fixture
def targets(steam_config):
    return DispersalTargets.from_steam_config(steam_config)


class TestListLibrary:
    def test_lists_lua_files_sorted_numerically(self, targets):
        for app_id in ("1000", "20", "300"):
            (targets.plugin_dir / f"{app_id}.lua").write_text("")
        (targets.plugin_dir / "notes.txt").write_text("")
        (targets.depotcache_dir / "20.manifest").write_bytes(b"")

        entries = list_library(targets)

        assert [e.app_id for e in entries] == ["20", "300", "1000"]
        assert entries[0].manifest_file == targets.depotcache_dir / "20.manifest"
        assert entries[1].manifest_file is None
        assert entries[0].display_name == "20.lua"

    def test_missing_plugin_dir_is_empty(self, tmp_path):
        targets = DispersalTargets.from_steam_config(tmp_path / "none")

        assert list_library(targets) == []


class TestRemoveLibraryEntry:
    def test_removes_all_three_files(self, targets):
        (targets.plugin_dir / "730.lua").write_text("")
        (targets.depotcache_dir / "730.manifest").write_bytes(b"")
        (targets.stats_dir / "730.bin").write_bytes(b"")
        (targets.plugin_dir / "731.lua").write_text("")

        assert remove_library_entry(targets, "730") == 3
        assert not (targets.plugin_dir / "730.lua").exists()
        assert (targets.plugin_dir / "731.lua").exists()

    def test_nothing_to_remove(self, targets, mocker):
        mock_logger = mocker.patch("depotfetch.download.library.logger")

        assert remove_library_entry(targets, "730") == 0
        mock_logger.warning.assert_called_once()

    @pytest.mark.parametrize("app_id", ["../730", "abc", ""])
    def test_rejects_non_numeric_ids(self, targets, app_id):
        with pytest.raises(ValidationError):
            remove_library_entry(targets, app_id)


class TestListDownloadedFiles:
    def test_lists_matching_files_two_levels_deep(self, tmp_path):
        (tmp_path / "Game - 730 (Branch).zip").write_bytes(b"PK12")
        (tmp_path / "readme.txt").write_text("x")
        temp_dir = tmp_path / "_Game_730_false_temp"
        temp_dir.mkdir()
        (temp_dir / "730.lua").write_text("addappid(730)")
        (temp_dir / "731_1.MANIFEST").write_bytes(b"m")
        deeper = temp_dir / "nested"
        deeper.mkdir()
        (deeper / "too_deep.lua").write_text("")

        files = list_downloaded_files(tmp_path)

        assert [f.name for f in files] == ["730.lua", "731_1.MANIFEST", "Game - 730 (Branch).zip"]
        assert [f.file_type for f in files] == ["lua", "manifest", "zip"]
        assert files[2].size == 4
        assert files[0].path == temp_dir / "730.lua"

    def test_sorted_case_insensitively(self, tmp_path):
        for name in ("b.zip", "A.zip", "c.lua"):
            (tmp_path / name).write_bytes(b"")

        assert [f.name for f in list_downloaded_files(tmp_path)] == ["A.zip", "b.zip", "c.lua"]

    def test_empty_directory(self, tmp_path):
        assert list_downloaded_files(tmp_path) == []

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(FileSystemError) as exc_info:
            list_downloaded_files(tmp_path / "missing")

        assert exc_info.value.path == str(tmp_path / "missing")

    def test_file_instead_of_directory_raises(self, tmp_path):
        target = tmp_path / "file.zip"
        target.write_bytes(b"")

        with pytest.raises(FileSystemError):
            list_downloaded_files(target)
