"""
File operations for the download subsystem.

Atomic text rewrites, binary writes that report FileSystemError, safe archive
member handling and the ArchiveDisperser that spreads a downloaded archive
over the Steam configuration directories.
"""

import io
import os
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import Union

from depotfetch.constants import (
    BIN_EXTENSION,
    LUA_EXTENSION,
    MANIFEST_NAME_MARKER,
)
from depotfetch.download.interfaces import DispersalCounts, DispersalTargets, Pathish
from depotfetch.exceptions import (
    CorruptedArchiveError,
    ExtractionError,
    FileSystemError,
)
from depotfetch.log_utils import logger

ArchiveSource = Union[bytes, Pathish]


def _is_within_base(real_base_dir: str, candidate: str) -> bool:
    """
    Determine whether the candidate path resides within the given base directory.

    Returns:
        True if the candidate path is inside `real_base_dir`, False otherwise.
    """
    try:
        return os.path.commonpath([real_base_dir, candidate]) == real_base_dir
    except ValueError:
        return False


def _is_safe_archive_member(member_name: str) -> bool:
    """
    Determine whether an archive member name is safe to extract.

    Returns:
        `True` if the member name contains no absolute paths, parent-directory references, or null bytes, `False` otherwise.
    """
    if not member_name or member_name.startswith(("/", "\\")):
        return False
    if "\x00" in member_name:
        return False
    normalized = os.path.normpath(member_name.replace("\\", "/"))
    if os.path.isabs(normalized) or os.path.splitdrive(normalized)[0]:
        return False
    parts = normalized.replace("\\", "/").split("/")
    return ".." not in parts


def safe_extract_path(extract_dir: str, file_path: str) -> str:
    """
    Resolve a safe absolute extraction path and prevent directory traversal.

    Raises:
        ValueError: If the resolved path is outside extract_dir.
    """
    real_extract_dir = os.path.realpath(extract_dir)
    normalized_path = os.path.realpath(os.path.join(real_extract_dir, file_path))

    if not _is_within_base(real_extract_dir, normalized_path):
        raise ValueError(
            f"Unsafe extraction path '{file_path}' is outside base '{extract_dir}'"
        )

    return normalized_path


def write_bytes(file_path: Pathish, content: bytes) -> Path:
    """
    Write binary content, creating parent directories.

    Raises:
        FileSystemError: When the directory or file cannot be written.
    """
    target = Path(file_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    except OSError as e:
        raise FileSystemError(
            "Could not write file", path=str(target), details=str(e)
        ) from e
    return target


def read_text(file_path: Pathish) -> str:
    """
    Read a UTF-8 text file keeping its original line endings.

    Raises:
        FileSystemError: When the file is missing or unreadable.
    """
    try:
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(
            "Could not read file", path=str(file_path), details=str(e)
        ) from e


def atomic_write_text(file_path: Pathish, content: str, suffix: str = ".tmp") -> None:
    """
    Write text to a file atomically by writing to a temporary file and replacing the target.

    The temporary file lives next to the target so the final os.replace never
    crosses file systems. Line endings are written exactly as given.

    Raises:
        FileSystemError: When the temporary file cannot be created, written or moved into place.
    """
    file_path = os.fspath(file_path)
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(os.path.abspath(file_path)), prefix="tmp-", suffix=suffix
        )
    except OSError as e:
        raise FileSystemError(
            "Could not create temporary file", path=file_path, details=str(e)
        ) from e

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8", newline="") as temp_f:
            temp_f.write(content)
        os.replace(temp_path, file_path)
    except (OSError, UnicodeEncodeError) as e:
        raise FileSystemError("Could not write file", path=file_path, details=str(e)) from e
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as cleanup_error:
                logger.debug(f"Could not remove temp file {temp_path}: {cleanup_error}")


def open_archive(archive: ArchiveSource) -> zipfile.ZipFile:
    """
    Open a zip archive from raw bytes or from a path.

    Raises:
        CorruptedArchiveError: The data is not a readable zip archive.
        FileSystemError: The archive path cannot be read.
    """
    label = "<memory>" if isinstance(archive, (bytes, bytearray)) else os.fspath(archive)
    try:
        if isinstance(archive, (bytes, bytearray)):
            return zipfile.ZipFile(io.BytesIO(archive))
        return zipfile.ZipFile(archive)
    except zipfile.BadZipFile as e:
        raise CorruptedArchiveError(
            "Archive is not a valid zip file", archive_path=label, details=str(e)
        ) from e
    except OSError as e:
        raise FileSystemError("Could not open archive", path=label, details=str(e)) from e


def _classify(file_name: str) -> tuple:
    """
    Return (extension_target, name_match) for a file name.

    extension_target is "lua", "bin" or None; name_match tells whether the name
    contains the manifest marker.
    """
    lowered = file_name.lower()
    extension = os.path.splitext(lowered)[1]
    if extension == LUA_EXTENSION:
        extension_target = "lua"
    elif extension == BIN_EXTENSION:
        extension_target = "bin"
    else:
        extension_target = None
    return extension_target, MANIFEST_NAME_MARKER in lowered


class ArchiveDisperser:
    """
    Spread the files of an archive over the Steam target directories.

    Rules, applied to every regular file regardless of where it sits in the
    archive:
    - `.lua` files go to the plugin directory
    - `.bin` files go to the stats directory
    - any file whose name contains "manifest" also goes to the depot cache

    A single file can therefore be copied twice. Each file is counted once, under
    its extension when it has a lua/bin extension and under "manifest" otherwise.
    """

    def extract_to(self, archive: ArchiveSource, scratch_dir: str) -> int:
        """
        Extract every member of archive below scratch_dir.

        Directory entries only create directories. Members whose names would
        escape scratch_dir are skipped with a warning.

        Returns:
            int: Number of regular files extracted.
        """
        extracted = 0
        with open_archive(archive) as zf:
            for info in zf.infolist():
                name = info.filename
                if not _is_safe_archive_member(name):
                    logger.warning(f"Skipping unsafe archive member: {name}")
                    continue
                try:
                    target = safe_extract_path(scratch_dir, name)
                except ValueError as e:
                    logger.warning(str(e))
                    continue

                if info.is_dir():
                    os.makedirs(target, exist_ok=True)
                    continue

                os.makedirs(os.path.dirname(target), exist_ok=True)
                with zf.open(info) as source, open(target, "wb") as dest:
                    shutil.copyfileobj(source, dest)
                extracted += 1
        return extracted

    def disperse(
        self, archive: ArchiveSource, targets: DispersalTargets
    ) -> DispersalCounts:
        """
        Extract archive into a scratch directory and copy its files to targets.

        Parameters:
            archive: Zip content as bytes, or a path to a zip file.
            targets (DispersalTargets): Destination directories.

        Returns:
            DispersalCounts: Per-category counts and the total number of copies.

        Raises:
            CorruptedArchiveError: archive is not a valid zip.
            ExtractionError: any I/O failure while extracting or copying. Files
                already copied stay in place.
        """
        counts = DispersalCounts()
        scratch_dir = tempfile.mkdtemp(prefix="depotfetch-disperse-")
        try:
            try:
                extracted = self.extract_to(archive, scratch_dir)
                logger.debug(f"Extracted {extracted} files into {scratch_dir}")

                for root, dirs, files in os.walk(scratch_dir):
                    dirs.sort()
                    for file_name in sorted(files):
                        source = os.path.join(root, file_name)
                        if os.path.islink(source) or not os.path.isfile(source):
                            continue
                        self._disperse_file(source, file_name, targets, counts)
            except zipfile.BadZipFile as e:
                raise CorruptedArchiveError("Archive is corrupted", details=str(e)) from e
            except (OSError, RuntimeError, EOFError, zlib.error) as e:
                # RuntimeError: encrypted members; zlib.error, EOFError: damaged member data
                raise ExtractionError("Failed to disperse archive", details=str(e)) from e
        finally:
            shutil.rmtree(scratch_dir, ignore_errors=True)

        logger.info(
            f"Dispersed archive: {counts.lua} lua, {counts.manifest} manifest, {counts.bin} bin files"
        )
        return counts

    def _disperse_file(
        self,
        source: str,
        file_name: str,
        targets: DispersalTargets,
        counts: DispersalCounts,
    ) -> None:
        extension_target, name_match = _classify(file_name)

        destinations = []
        if extension_target == "lua":
            destinations.append(targets.plugin_dir)
            counts.lua += 1
        elif extension_target == "bin":
            destinations.append(targets.stats_dir)
            counts.bin += 1
        if name_match:
            destinations.append(targets.depotcache_dir)
            if extension_target is None:
                counts.manifest += 1

        for destination in destinations:
            os.makedirs(destination, exist_ok=True)
            shutil.copy2(source, os.path.join(destination, file_name))
            counts.copied += 1
            logger.debug(f"Copied {file_name} to {destination}")
