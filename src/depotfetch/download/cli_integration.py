"""
CLI Integration for the retrieval subsystem.

Wires configuration into the probe, mirror, resolver, orchestrator and
reconciliation layers and exposes the operations the command line uses.
"""

import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests

from depotfetch import setup_config
from depotfetch.constants import (
    ARCHIVE_PROBE_TIMEOUT,
    FILE_PROBE_TIMEOUT,
    GITHUB_API_TIMEOUT,
)
from depotfetch.exceptions import (
    ArchiveError,
    ConfigurationError,
    ResourceNotFoundError,
    ValidationError,
)
from depotfetch.log_utils import logger
from depotfetch.utils import create_session, is_numeric_id

from . import library, manifest
from .files import ArchiveDisperser
from .github_source import RepositoryResolver
from .interfaces import (
    DispersalCounts,
    DispersalTargets,
    DownloadedFile,
    LibraryEntry,
    Pathish,
    RepositoryEntry,
    RetrievalResult,
)
from .mirrors import MirrorFallbackFetcher
from .orchestrator import RetrievalOrchestrator
from .probe import SourceProbe


class DepotFetchIntegration:
    """
    Entry points used by the CLI.

    Steam directories are looked up lazily so that operations that do not
    touch Steam (plain retrieval without dispersal) work on machines without a
    Steam installation.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config if config is not None else setup_config.default_config()
        self.session = session or create_session()

        self.probe = SourceProbe(self.session)
        self.fetcher = MirrorFallbackFetcher(
            self.probe,
            file_timeout=self.config.get("FILE_PROBE_TIMEOUT") or FILE_PROBE_TIMEOUT,
            archive_timeout=self.config.get("ARCHIVE_PROBE_TIMEOUT") or ARCHIVE_PROBE_TIMEOUT,
        )
        self.resolver = RepositoryResolver(
            self.session, timeout=self.config.get("API_TIMEOUT") or GITHUB_API_TIMEOUT
        )
        self.disperser = ArchiveDisperser()
        self._targets: Optional[DispersalTargets] = None

    @property
    def targets(self) -> DispersalTargets:
        """Steam dispersal targets; raises ConfigurationError when Steam cannot be found."""
        if self._targets is None:
            steam_config = setup_config.find_steam_config_path(self.config)
            self._targets = DispersalTargets.from_steam_config(steam_config)
        return self._targets

    def _steam_available(self) -> bool:
        try:
            self.targets
        except ConfigurationError as e:
            logger.warning(f"Archives will not be dispersed: {e}")
            return False
        return True

    def repositories(self) -> List[RepositoryEntry]:
        return setup_config.get_repositories(self.config)

    def build_orchestrator(self, disperse: bool) -> RetrievalOrchestrator:
        return RetrievalOrchestrator(
            fetcher=self.fetcher,
            resolver=self.resolver,
            disperser=self.disperser,
            dispersal_targets=self.targets if disperse else None,
        )

    def retrieve_result(
        self,
        app_id: str,
        game_name: str,
        repositories: Optional[Iterable[RepositoryEntry]] = None,
        output_root: Optional[Pathish] = None,
        disperse: Optional[bool] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RetrievalResult:
        """
        Run a retrieval and return the full result.

        Defaults come from the configuration: REPOSITORIES, DOWNLOAD_DIR and
        DISPERSE_ARCHIVES. When dispersal is only enabled by configuration and
        no Steam directory can be found, the archive is saved without it.

        Raises:
            ValidationError: app_id is not numeric.
            ConfigurationError: disperse=True was passed and Steam cannot be found.
        """
        app_id = str(app_id).strip()
        if not is_numeric_id(app_id):
            raise ValidationError("Invalid AppID", field="app_id", value=app_id)

        if disperse is None:
            disperse = bool(self.config.get("DISPERSE_ARCHIVES")) and self._steam_available()
        repos = list(repositories) if repositories is not None else self.repositories()
        root = Path(output_root or self.config.get("DOWNLOAD_DIR") or setup_config.DEFAULT_DOWNLOAD_DIR)

        orchestrator = self.build_orchestrator(disperse)
        return orchestrator.retrieve(
            app_id, game_name or app_id, repos, root, cancel_event=cancel_event
        )

    def retrieve(
        self,
        app_id: str,
        game_name: str,
        repositories: Optional[Iterable[RepositoryEntry]] = None,
        output_root: Optional[Pathish] = None,
    ) -> bool:
        """Retrieve content for app_id; True when any repository supplied it."""
        return bool(
            self.retrieve_result(app_id, game_name, repositories, output_root)
        )

    def disperse_archive(self, path: Pathish) -> DispersalCounts:
        """Disperse an archive that is already on disk into the Steam directories."""
        return self.disperser.disperse(path, self.targets)

    def update_manifests(self, app_id: str, game_name: str) -> str:
        """
        Refresh the setManifestid bindings of an installed game.

        The plugin file is located first, then each configured repository is
        asked for its archive of branch app_id, in order, until one delivers.
        The manifest file names in that archive give the new bindings.

        Returns:
            str: A one-line summary of the update.

        Raises:
            LuaFileNotFoundError: No plugin file installs app_id.
            ResourceNotFoundError: No repository has an archive for app_id.
            ArchiveError: The archive holds no manifest files.
        """
        lua_file = manifest.find_lua_file_for_appid(self.targets.plugin_dir, app_id)
        logger.info(f"Updating {lua_file.name} for {game_name or app_id}")

        archive = None
        for entry in self.repositories():
            archive = self.fetcher.fetch_archive(entry.name, app_id)
            if archive:
                logger.info(f"Using archive from {entry.name}")
                break
            logger.warning(f"Skipping repository {entry.name}: archive not available")

        if not archive:
            raise ResourceNotFoundError(
                f"No repository has data for AppID {app_id}"
            )

        bindings = manifest.extract_manifest_bindings(archive)
        if not bindings:
            raise ArchiveError(f"Archive for AppID {app_id} contains no manifest files")

        result = manifest.merge_manifest_ids(lua_file, bindings)
        return (
            f"Update for {game_name or app_id} complete. "
            f"Updated: {result.updated}, Appended: {result.appended}."
        )

    def sync_dlcs(self, main_app_id: str, dlc_ids: Iterable[str]) -> int:
        """Replace the DLC list of main_app_id's plugin file; returns the number of DLC lines written."""
        lua_file = manifest.find_lua_file_for_appid(self.targets.plugin_dir, main_app_id)
        return manifest.sync_addappids(lua_file, main_app_id, dlc_ids)

    def list_dlcs(self, app_id: str) -> List[str]:
        lua_file = manifest.find_lua_file_for_appid(self.targets.plugin_dir, app_id)
        return manifest.list_dlc_ids(lua_file, app_id)

    def list_library(self) -> List[LibraryEntry]:
        return library.list_library(self.targets)

    def remove_from_library(self, app_id: str) -> int:
        return library.remove_library_entry(self.targets, app_id)

    def list_downloads(self, directory: Optional[Pathish] = None) -> List[DownloadedFile]:
        """List retrieved files in directory, DOWNLOAD_DIR by default."""
        root = directory or self.config.get("DOWNLOAD_DIR") or setup_config.DEFAULT_DOWNLOAD_DIR
        return library.list_downloaded_files(root)
