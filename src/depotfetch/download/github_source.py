"""
GitHub repository resolution.

Turns a branch label into a commit sha and lists the blobs of that commit.
Every failure here is a soft miss: callers get None and move to the next
repository.
"""

from typing import List, Optional

import requests

from depotfetch.constants import (
    GITHUB_API_TIMEOUT,
    GITHUB_BRANCH_URL_TEMPLATE,
    GITHUB_TREE_URL_TEMPLATE,
)
from depotfetch.download.interfaces import PathEntry, PathKind, RevisionInfo
from depotfetch.log_utils import logger
from depotfetch.utils import create_session


class RepositoryResolver:
    """Resolve branch labels and tree listings through the GitHub REST API."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = GITHUB_API_TIMEOUT,
    ):
        self.session = session or create_session()
        self.timeout = timeout

    def _get_json(self, url: str) -> Optional[object]:
        """
        GET a JSON document.

        Returns:
            The decoded JSON, or None on transport failure, non-200 status or a
            body that is not valid JSON.
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"GitHub API request failed for {url}: {e}")
            return None

        try:
            if response.status_code != 200:
                logger.warning(
                    f"GitHub API returned status {response.status_code} for {url}"
                )
                return None
            try:
                return response.json()
            except ValueError as e:
                logger.warning(f"Malformed JSON from {url}: {e}")
                return None
        finally:
            response.close()

    def resolve_revision(self, repo: str, label: str) -> Optional[RevisionInfo]:
        """
        Resolve branch `label` of `repo` to its head commit.

        Reads `commit.sha` from the branch endpoint. Returns None when the
        branch does not exist or the response lacks a sha.
        """
        data = self._get_json(GITHUB_BRANCH_URL_TEMPLATE.format(repo=repo, branch=label))
        if data is None:
            return None

        sha = None
        if isinstance(data, dict) and isinstance(data.get("commit"), dict):
            sha = data["commit"].get("sha")
        if not isinstance(sha, str) or not sha:
            logger.warning(f"Branch {label} of {repo} has no commit sha")
            return None

        logger.debug(f"Resolved {repo}@{label} to {sha}")
        return RevisionInfo(sha=sha)

    def list_blob_paths(self, repo: str, sha: str) -> Optional[List[PathEntry]]:
        """
        List every blob of commit `sha`, in the order GitHub returns them.

        A truncated listing is used as-is with a warning. Returns None when the
        listing cannot be fetched or has no `tree` array.
        """
        data = self._get_json(GITHUB_TREE_URL_TEMPLATE.format(repo=repo, sha=sha))
        if not isinstance(data, dict) or not isinstance(data.get("tree"), list):
            if data is not None:
                logger.warning(f"Tree listing of {repo}@{sha} has no tree array")
            return None

        if data.get("truncated"):
            logger.warning(
                f"Tree listing of {repo}@{sha} was truncated; some files will be missing"
            )

        entries: List[PathEntry] = []
        for item in data["tree"]:
            if not isinstance(item, dict):
                continue
            path = item.get("path")
            if not isinstance(path, str) or item.get("type") != PathKind.BLOB.value:
                continue
            entries.append(PathEntry(path=path, kind=PathKind.BLOB))

        logger.debug(f"{repo}@{sha} lists {len(entries)} files")
        return entries
