"""Listing and removal of installed games, and listing of retrieved files."""

from pathlib import Path
from typing import List

from depotfetch.constants import (
    BIN_EXTENSION,
    DOWNLOADED_FILE_EXTENSIONS,
    LUA_EXTENSION,
    MANIFEST_EXTENSION,
)
from depotfetch.download.interfaces import (
    DispersalTargets,
    DownloadedFile,
    LibraryEntry,
    Pathish,
)
from depotfetch.exceptions import FileSystemError, ValidationError
from depotfetch.log_utils import logger
from depotfetch.utils import is_numeric_id


def list_library(targets: DispersalTargets) -> List[LibraryEntry]:
    """
    List the games installed in the plugin directory, sorted by AppID.

    Each `<app_id>.lua` in the plugin directory is one entry. The matching
    `<app_id>.manifest` in the depot cache is reported when it exists.
    """
    plugin_dir = Path(targets.plugin_dir)
    if not plugin_dir.is_dir():
        logger.info(f"Plugin directory {plugin_dir} does not exist; library is empty")
        return []

    entries = []
    try:
        lua_files = [
            p for p in plugin_dir.iterdir()
            if p.is_file() and p.suffix.lower() == LUA_EXTENSION
        ]
    except OSError as e:
        raise FileSystemError(
            "Could not list plugin directory", path=str(plugin_dir), details=str(e)
        ) from e

    for lua_file in lua_files:
        app_id = lua_file.stem
        manifest = Path(targets.depotcache_dir) / f"{app_id}{MANIFEST_EXTENSION}"
        entries.append(
            LibraryEntry(
                app_id=app_id,
                lua_file=lua_file,
                manifest_file=manifest if manifest.is_file() else None,
            )
        )

    entries.sort(key=_sort_key)
    return entries


def _sort_key(entry: LibraryEntry):
    # numeric AppIDs first, in numeric order
    if is_numeric_id(entry.app_id):
        return (0, int(entry.app_id), "")
    return (1, 0, entry.app_id)


def remove_library_entry(targets: DispersalTargets, app_id: str) -> int:
    """
    Delete the plugin, manifest and stats files of app_id.

    Removes `<app_id>.lua`, `<app_id>.manifest` and `<app_id>.bin` from their
    target directories when present.

    Returns:
        int: Number of files deleted.

    Raises:
        ValidationError: app_id is not numeric.
        FileSystemError: A file exists but cannot be deleted.
    """
    if not is_numeric_id(app_id):
        raise ValidationError("Invalid AppID", field="app_id", value=app_id)

    candidates = (
        Path(targets.plugin_dir) / f"{app_id}{LUA_EXTENSION}",
        Path(targets.depotcache_dir) / f"{app_id}{MANIFEST_EXTENSION}",
        Path(targets.stats_dir) / f"{app_id}{BIN_EXTENSION}",
    )
    removed = 0
    for path in candidates:
        if not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as e:
            raise FileSystemError(
                "Could not delete file", path=str(path), details=str(e)
            ) from e
        logger.info(f"Removed {path}")
        removed += 1

    if removed == 0:
        logger.warning(f"No files found for AppID {app_id}")
    return removed


def list_downloaded_files(directory: Pathish) -> List[DownloadedFile]:
    """
    List the retrieved .zip, .manifest and .lua files in directory.

    Files directly in directory and in its immediate subdirectories (such as
    the temp folders of enumerated retrievals) are reported, sorted by
    lower-cased name.

    Raises:
        FileSystemError: directory is missing, is not a directory or cannot be read.
    """
    root = Path(directory)
    if not root.exists():
        raise FileSystemError("Download directory does not exist", path=str(root))
    if not root.is_dir():
        raise FileSystemError("Download path is not a directory", path=str(root))

    found = []
    try:
        for child in root.iterdir():
            if child.is_dir():
                found.extend(p for p in child.iterdir() if p.is_file())
            elif child.is_file():
                found.append(child)
        files = [
            DownloadedFile(
                name=p.name,
                path=p,
                size=p.stat().st_size,
                file_type=p.suffix.lower().lstrip("."),
            )
            for p in found
            if p.suffix.lower() in DOWNLOADED_FILE_EXTENSIONS
        ]
    except OSError as e:
        raise FileSystemError(
            "Could not list download directory", path=str(root), details=str(e)
        ) from e

    files.sort(key=lambda f: f.name.lower())
    logger.debug(f"Found {len(files)} downloaded files in {root}")
    return files
