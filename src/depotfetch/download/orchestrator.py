"""
Retrieval Orchestrator

Tries an ordered list of repositories one at a time until one of them yields
content for an AppID. Branch repositories are fetched as a single archive;
Decrypted/Encrypted repositories are enumerated and fetched file by file
through the mirror list.
"""

import os
import threading
from pathlib import Path
from typing import Iterable, Optional

from depotfetch.constants import (
    ARCHIVE_OUTPUT_TEMPLATE,
    PROGRESS_LOG_INTERVAL,
    TEMP_DIR_TEMPLATE,
)
from depotfetch.exceptions import DepotFetchError, FileSystemError
from depotfetch.log_utils import logger
from depotfetch.utils import sanitize_game_name

from .files import ArchiveDisperser, safe_extract_path, write_bytes
from .github_source import RepositoryResolver
from .interfaces import (
    DispersalTargets,
    Pathish,
    RepositoryEntry,
    RetrievalResult,
)
from .mirrors import MirrorFallbackFetcher


class RetrievalOrchestrator:
    """
    Sequential fallback over repositories.

    At most one repository ever succeeds: as soon as one yields a non-empty
    archive or at least one enumerated file, the remaining entries are not
    touched. There is no parallelism between repositories or between files.
    """

    def __init__(
        self,
        fetcher: Optional[MirrorFallbackFetcher] = None,
        resolver: Optional[RepositoryResolver] = None,
        disperser: Optional[ArchiveDisperser] = None,
        dispersal_targets: Optional[DispersalTargets] = None,
    ):
        """
        Parameters:
            fetcher: Mirror/archive fetcher; a default one is built when omitted.
            resolver: Branch and tree resolver; a default one is built when omitted.
            disperser: Used on freshly downloaded archives when dispersal_targets is set.
            dispersal_targets: Steam directories to disperse archives into, or
                None to only save archives.
        """
        self.fetcher = fetcher or MirrorFallbackFetcher()
        self.resolver = resolver or RepositoryResolver()
        self.disperser = disperser or ArchiveDisperser()
        self.dispersal_targets = dispersal_targets

    def retrieve(
        self,
        app_id: str,
        game_name: str,
        repositories: Iterable[RepositoryEntry],
        output_root: Pathish,
        cancel_event: Optional[threading.Event] = None,
    ) -> RetrievalResult:
        """
        Retrieve content for app_id from the first repository that has it.

        Parameters:
            app_id (str): Steam AppID; also the branch name in every repository.
            game_name (str): Human-readable name used for output naming.
            repositories: Entries in priority order.
            output_root: Directory receiving the archive or temp directory.
            cancel_event: Optional event checked between repositories and
                between file fetches.

        Returns:
            RetrievalResult: Truthy when a repository produced content. Running
            out of repositories is a normal unsuccessful result, not an error.

        Raises:
            FileSystemError: The output root or an output file cannot be written.
        """
        output_root = Path(output_root)
        try:
            output_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(
                "Could not create output directory", path=str(output_root), details=str(e)
            ) from e

        game_label = sanitize_game_name(game_name)
        result = RetrievalResult(success=False, app_id=app_id)

        for entry in repositories:
            if self._cancelled(cancel_event):
                result.cancelled = True
                return result

            logger.info(
                f"Trying repository {entry.name} ({entry.strategy.label}) for AppID {app_id}"
            )
            if entry.strategy.is_enumerated:
                reason = self._try_enumerated(
                    entry, app_id, game_label, output_root, result, cancel_event
                )
            else:
                reason = self._try_archive(entry, app_id, game_label, output_root, result)

            if result.success or result.cancelled:
                return result

            logger.warning(f"Skipping repository {entry.name}: {reason}")
            result.skipped.append(entry.name)

        logger.error(
            f"[FINISHED] Failed to find data for AppID {app_id} from all selected repositories."
        )
        return result

    @staticmethod
    def _cancelled(cancel_event: Optional[threading.Event]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Retrieval cancelled")
            return True
        return False

    def _try_archive(
        self,
        entry: RepositoryEntry,
        app_id: str,
        game_label: str,
        output_root: Path,
        result: RetrievalResult,
    ) -> str:
        """Fetch the branch archive; fills result and returns "" on success, else a skip reason."""
        content = self.fetcher.fetch_archive(entry.name, app_id)
        if not content:
            return "archive not available"

        output_path = output_root / ARCHIVE_OUTPUT_TEMPLATE.format(
            game=game_label, app_id=app_id
        )
        write_bytes(output_path, content)
        logger.info(f"Saved archive from {entry.name} to {output_path}")

        result.success = True
        result.repository = entry
        result.output_path = output_path
        result.files_written = 1

        if self.dispersal_targets is not None:
            try:
                result.dispersal = self.disperser.disperse(
                    output_path, self.dispersal_targets
                )
            except DepotFetchError as e:
                logger.error(f"Archive saved but could not be dispersed: {e}")
        return ""

    def _try_enumerated(
        self,
        entry: RepositoryEntry,
        app_id: str,
        game_label: str,
        output_root: Path,
        result: RetrievalResult,
        cancel_event: Optional[threading.Event],
    ) -> str:
        """Resolve, list and fetch every blob; fills result on success, else returns a skip reason."""
        revision = self.resolver.resolve_revision(entry.name, app_id)
        if revision is None:
            return f"could not resolve branch {app_id}"

        paths = self.resolver.list_blob_paths(entry.name, revision.sha)
        if paths is None:
            return f"could not list files at {revision.sha}"
        if not paths:
            return "branch contains no files"

        temp_dir = output_root / TEMP_DIR_TEMPLATE.format(
            game=game_label,
            app_id=app_id,
            encrypted=str(entry.strategy.is_encrypted).lower(),
        )
        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(
                "Could not create temp directory", path=str(temp_dir), details=str(e)
            ) from e

        total = len(paths)
        written = 0
        for index, path_entry in enumerate(paths, start=1):
            if self._cancelled(cancel_event):
                result.cancelled = True
                break

            content = self.fetcher.fetch_file(entry.name, revision, path_entry.path)
            if content is not None:
                try:
                    target = safe_extract_path(str(temp_dir), path_entry.path)
                except ValueError as e:
                    logger.warning(str(e))
                else:
                    write_bytes(target, content)
                    written += 1

            if index % PROGRESS_LOG_INTERVAL == 0:
                logger.info(f"Progress: {index}/{total} files")

        logger.info(f"Downloaded {written} of {total} files from {entry.name}")
        result.files_written = written

        if written > 0 and not result.cancelled:
            result.success = True
            result.repository = entry
            result.output_path = temp_dir
            logger.info(
                f"SUCCESS! {written} files from non-branch repo saved in temp folder: {temp_dir}"
            )
            return ""

        if written == 0:
            self._remove_empty_dir(temp_dir, output_root)
        return "no files could be downloaded"

    @staticmethod
    def _remove_empty_dir(directory: Path, output_root: Path) -> None:
        real_root = os.path.realpath(output_root)
        if os.path.dirname(os.path.realpath(directory)) != real_root:
            return
        try:
            directory.rmdir()
        except OSError as e:
            logger.debug(f"Could not remove empty directory {directory}: {e}")
