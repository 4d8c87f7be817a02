"""Ordered mirror fallback for repository files and archives."""

from typing import Optional, Sequence

from depotfetch.constants import (
    ARCHIVE_PROBE_TIMEOUT,
    FILE_PROBE_TIMEOUT,
    GITHUB_ZIPBALL_URL_TEMPLATE,
    MIRROR_URL_TEMPLATES,
)
from depotfetch.download.interfaces import Payload, RevisionInfo
from depotfetch.download.probe import SourceProbe
from depotfetch.log_utils import logger


class MirrorFallbackFetcher:
    """
    Fetch repository content from a fixed list of mirrors.

    Files are tried against every template in declared order and the first
    payload wins. The order never adapts to past results. Archives only exist on
    the canonical origin and are fetched with a single call.
    """

    def __init__(
        self,
        probe: Optional[SourceProbe] = None,
        templates: Sequence[str] = MIRROR_URL_TEMPLATES,
        file_timeout: float = FILE_PROBE_TIMEOUT,
        archive_timeout: float = ARCHIVE_PROBE_TIMEOUT,
    ):
        self.probe = probe or SourceProbe()
        self.templates = tuple(templates)
        self.file_timeout = file_timeout
        self.archive_timeout = archive_timeout

    def mirror_urls(self, repo: str, revision: RevisionInfo, path: str) -> list:
        return [
            template.format(repo=repo, sha=revision.sha, path=path)
            for template in self.templates
        ]

    def fetch_file(
        self, repo: str, revision: RevisionInfo, path: str
    ) -> Optional[bytes]:
        """
        Fetch one file pinned to revision.

        Returns:
            Optional[bytes]: Content from the first mirror that answered with a
            payload, or None after every mirror failed.
        """
        for url in self.mirror_urls(repo, revision, path):
            outcome = self.probe.probe(url, self.file_timeout)
            if isinstance(outcome, Payload):
                return outcome.content

        logger.error(f"[TOTAL FAILURE] Could not download file: {path}")
        return None

    def fetch_archive(self, repo: str, revision_label: str) -> Optional[bytes]:
        """Fetch the zip archive of a branch from the canonical origin."""
        url = GITHUB_ZIPBALL_URL_TEMPLATE.format(repo=repo, label=revision_label)
        logger.info(f"Requesting archive of {repo} at {revision_label}")
        outcome = self.probe.probe(url, self.archive_timeout)
        if isinstance(outcome, Payload):
            return outcome.content
        return None
