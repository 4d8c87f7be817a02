"""
Reconciliation of Steam plugin .lua files.

Two independent rewrites operate on the same file: `setManifestid` bindings
are merged in place, and the `addappid` DLC set is replaced wholesale. Both
are plain pattern-match-and-rewrite on the text, never a Lua parser.
"""

import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

from depotfetch.constants import (
    ADDAPPID_PATTERN,
    DLC_SYNC_MARKER,
    LUA_EXTENSION,
    MANIFEST_APPEND_MARKER,
    MANIFEST_FILENAME_PATTERN,
    SET_MANIFEST_ID_PATTERN,
)
from depotfetch.download.files import ArchiveSource, atomic_write_text, open_archive, read_text
from depotfetch.download.interfaces import MergeResult, Pathish
from depotfetch.exceptions import FileSystemError, LuaFileNotFoundError, ValidationError
from depotfetch.log_utils import logger
from depotfetch.utils import is_numeric_id

SET_MANIFEST_ID_RX = re.compile(SET_MANIFEST_ID_PATTERN)
ADDAPPID_RX = re.compile(ADDAPPID_PATTERN)
MANIFEST_FILENAME_RX = re.compile(MANIFEST_FILENAME_PATTERN)


def _detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def _validate_ids(ids: Iterable[str], field: str) -> List[str]:
    validated = []
    for value in ids:
        value = str(value).strip()
        if not is_numeric_id(value):
            raise ValidationError(f"Invalid {field}", field=field, value=value)
        validated.append(value)
    return validated


def merge_manifest_ids(lua_path: Pathish, bindings: Mapping[str, str]) -> MergeResult:
    """
    Merge depot -> manifest bindings into the setManifestid calls of a plugin file.

    Every existing `setManifestid(<depot>, "<manifest>", 0)` call whose depot is
    in `bindings` with a different manifest is rewritten in place. Depots in
    `bindings` that the file never mentions are appended below a marker comment.
    Calls for depots absent from `bindings` are left alone. The file is only
    rewritten when something changed, so a second run with the same bindings is
    a no-op.

    Parameters:
        lua_path: Plugin file to patch.
        bindings (Mapping[str, str]): Depot id -> manifest id, both digit strings.

    Returns:
        MergeResult: How many calls were updated and how many were appended.

    Raises:
        FileSystemError: The file cannot be read or written.
        ValidationError: A depot or manifest id is not numeric.
    """
    normalized = dict(
        zip(
            _validate_ids(bindings.keys(), "depot_id"),
            _validate_ids(bindings.values(), "manifest_id"),
        )
    )

    content = read_text(lua_path)
    seen = set()
    updated = 0

    def _replace(match: "re.Match[str]") -> str:
        nonlocal updated
        depot_id, manifest_id = match.group(1), match.group(2)
        seen.add(depot_id)
        new_manifest = normalized.get(depot_id)
        if new_manifest is None or new_manifest == manifest_id:
            return match.group(0)
        updated += 1
        logger.debug(f"Depot {depot_id}: manifest {manifest_id} -> {new_manifest}")
        return f'setManifestid({depot_id}, "{new_manifest}", 0)'

    new_content = SET_MANIFEST_ID_RX.sub(_replace, content)

    missing = [depot_id for depot_id in normalized if depot_id not in seen]
    if missing:
        newline = _detect_newline(content)
        lines = [
            f'setManifestid({depot_id}, "{normalized[depot_id]}", 0)'
            for depot_id in missing
        ]
        if new_content and not new_content.endswith(("\n", "\r")):
            new_content += newline
        new_content += newline + MANIFEST_APPEND_MARKER + newline
        new_content += newline.join(lines) + newline

    result = MergeResult(updated=updated, appended=len(missing))
    if result.changed:
        atomic_write_text(lua_path, new_content)
        logger.info(
            f"Patched {os.path.basename(lua_path)}: {result.updated} updated, {result.appended} appended"
        )
    else:
        logger.info(f"{os.path.basename(lua_path)} already up to date")
    return result


def sync_addappids(lua_path: Pathish, primary_id: str, desired_ids: Iterable[str]) -> int:
    """
    Replace the DLC addappid lines of a plugin file with desired_ids.

    Lines without an addappid call are kept verbatim, as are lines whose
    addappid call names the primary id. Every other addappid line is dropped,
    as is any marker left by an earlier sync together with the blank line just
    above it. Other blank lines stay. One `addappid(<id>)` line per
    desired id is then appended below the sync marker. The file is always
    rewritten.

    Returns:
        int: Number of addappid lines written for DLCs.

    Raises:
        FileSystemError: The file cannot be read or written.
        ValidationError: An id is not numeric.
    """
    primary_id = _validate_ids([primary_id], "app_id")[0]
    dlc_ids: List[str] = []
    for dlc_id in _validate_ids(desired_ids, "dlc_id"):
        if dlc_id != primary_id and dlc_id not in dlc_ids:
            dlc_ids.append(dlc_id)

    content = read_text(lua_path)
    newline = _detect_newline(content)

    kept = []
    for line in content.splitlines():
        if line.strip() == DLC_SYNC_MARKER:
            # the blank line written above the marker belongs to the old block
            if kept and not kept[-1].strip():
                kept.pop()
            continue
        ids_in_line = ADDAPPID_RX.findall(line)
        if ids_in_line and any(app_id != primary_id for app_id in ids_in_line):
            continue
        kept.append(line)

    body = newline.join(kept)
    if body:
        body += newline
    if dlc_ids:
        body += newline + DLC_SYNC_MARKER + newline
        body += newline.join(f"addappid({dlc_id})" for dlc_id in dlc_ids) + newline

    atomic_write_text(lua_path, body)
    logger.info(f"Synced {len(dlc_ids)} DLCs into {os.path.basename(lua_path)}")
    return len(dlc_ids)


def list_dlc_ids(lua_path: Pathish, primary_id: str) -> List[str]:
    """Return the addappid ids of a plugin file other than primary_id, in file order."""
    content = read_text(lua_path)
    found: List[str] = []
    for app_id in ADDAPPID_RX.findall(content):
        if app_id != primary_id and app_id not in found:
            found.append(app_id)
    return found


def extract_manifest_bindings(archive: ArchiveSource) -> Dict[str, str]:
    """
    Collect depot -> manifest bindings from the manifest files of an archive.

    Only member basenames of the form `<depot>_<manifest>.manifest` count. When
    a depot appears more than once the last member wins.
    """
    bindings: Dict[str, str] = {}
    with open_archive(archive) as zf:
        for name in zf.namelist():
            basename = name.replace("\\", "/").rsplit("/", 1)[-1]
            match = MANIFEST_FILENAME_RX.fullmatch(basename)
            if match:
                bindings[match.group(1)] = match.group(2)
    logger.debug(f"Found {len(bindings)} manifest bindings in archive")
    return bindings


def find_lua_file_for_appid(plugin_dir: Pathish, app_id: str) -> Path:
    """
    Locate the plugin file that installs app_id.

    A top-level `<app_id>.lua` wins. Otherwise the first `.lua` file (sorted by
    name) whose content contains `addappid(<app_id>)` is returned.

    Raises:
        LuaFileNotFoundError: No matching file exists or plugin_dir is missing.
    """
    plugin_dir = Path(plugin_dir)
    if not plugin_dir.is_dir():
        raise LuaFileNotFoundError(
            "Plugin directory does not exist", path=str(plugin_dir)
        )

    direct = plugin_dir / f"{app_id}{LUA_EXTENSION}"
    if direct.is_file():
        return direct

    try:
        candidates = sorted(
            p for p in plugin_dir.iterdir()
            if p.is_file() and p.suffix.lower() == LUA_EXTENSION
        )
    except OSError as e:
        raise FileSystemError(
            "Could not list plugin directory", path=str(plugin_dir), details=str(e)
        ) from e

    for candidate in candidates:
        try:
            content = read_text(candidate)
        except FileSystemError as e:
            logger.debug(f"Skipping unreadable plugin file {candidate}: {e}")
            continue
        if app_id in ADDAPPID_RX.findall(content):
            return candidate

    raise LuaFileNotFoundError(
        f"No .lua file found for AppID {app_id}", path=str(plugin_dir)
    )
