"""
Core data structures for the depotfetch download subsystem.

These types are shared by the probe, mirror, resolver, orchestrator and
dispersal layers. Probe outcomes are plain values rather than exceptions:
a mirror that answers 404 or times out is an expected result, not an error.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from depotfetch.constants import (
    REPO_TYPE_BRANCH,
    REPO_TYPE_DECRYPTED,
    REPO_TYPE_ENCRYPTED,
    STEAM_DEPOTCACHE_DIR_NAME,
    STEAM_PLUGIN_DIR_NAME,
    STEAM_STATS_DIR_NAME,
)

Pathish = Union[str, Path]


class RepoStrategy(Enum):
    """How content is pulled out of a repository."""

    ARCHIVE = REPO_TYPE_BRANCH
    ENUMERATED_PLAIN = REPO_TYPE_DECRYPTED
    ENUMERATED_ENCRYPTED = REPO_TYPE_ENCRYPTED

    @classmethod
    def from_label(cls, label: Optional[str]) -> "RepoStrategy":
        """
        Parse a configuration label ("Branch", "Decrypted", "Encrypted").

        Matching is case-insensitive. Unknown or missing labels fall back to
        ARCHIVE.
        """
        normalized = (label or "").strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.ARCHIVE

    @property
    def label(self) -> str:
        return self.value

    @property
    def is_enumerated(self) -> bool:
        return self is not RepoStrategy.ARCHIVE

    @property
    def is_encrypted(self) -> bool:
        return self is RepoStrategy.ENUMERATED_ENCRYPTED


@dataclass(frozen=True)
class RepositoryEntry:
    """A remote repository and the strategy used to read it."""

    name: str
    """Repository in owner/repo form"""

    strategy: RepoStrategy = RepoStrategy.ARCHIVE
    """Retrieval strategy for this repository"""

    @classmethod
    def from_config(cls, item: dict) -> "RepositoryEntry":
        return cls(
            name=str(item["name"]).strip(),
            strategy=RepoStrategy.from_label(item.get("type")),
        )

    def to_config(self) -> dict:
        return {"name": self.name, "type": self.strategy.label}


@dataclass(frozen=True)
class RevisionInfo:
    """Commit a branch label resolved to."""

    sha: str


class PathKind(Enum):
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"


@dataclass(frozen=True)
class PathEntry:
    """A single entry of a recursive tree listing."""

    path: str
    kind: PathKind = PathKind.BLOB


@dataclass(frozen=True)
class Payload:
    """Successful probe: the full response body."""

    content: bytes


@dataclass(frozen=True)
class Miss:
    """The source answered with a non-success status."""

    status_code: int


@dataclass(frozen=True)
class TransportError:
    """The source could not be reached or the response could not be read."""

    description: str


ProbeOutcome = Union[Payload, Miss, TransportError]


@dataclass(frozen=True)
class DispersalTargets:
    """Destination directories for dispersed archive content."""

    plugin_dir: Path
    """Receives .lua files"""

    stats_dir: Path
    """Receives .bin files"""

    depotcache_dir: Path
    """Receives any file whose name contains 'manifest'"""

    @classmethod
    def from_steam_config(cls, config_dir: Pathish) -> "DispersalTargets":
        base = Path(config_dir)
        return cls(
            plugin_dir=base / STEAM_PLUGIN_DIR_NAME,
            stats_dir=base / STEAM_STATS_DIR_NAME,
            depotcache_dir=base / STEAM_DEPOTCACHE_DIR_NAME,
        )


@dataclass
class DispersalCounts:
    """Per-category file counts from one dispersal."""

    lua: int = 0
    manifest: int = 0
    bin: int = 0
    copied: int = 0
    """Total number of copies made (a file may be copied to two places)"""

    @property
    def total(self) -> int:
        return self.lua + self.manifest + self.bin


@dataclass(frozen=True)
class MergeResult:
    updated: int = 0
    appended: int = 0

    @property
    def changed(self) -> bool:
        return (self.updated + self.appended) > 0


@dataclass
class RetrievalResult:
    """Outcome of one retrieve() call."""

    success: bool
    """Whether any repository produced content"""

    app_id: str = ""

    repository: Optional[RepositoryEntry] = None
    """The repository that satisfied the request"""

    output_path: Optional[Path] = None
    """The written archive or the temp directory holding enumerated files"""

    files_written: int = 0

    dispersal: Optional[DispersalCounts] = None
    """Counts from dispersal when an archive was dispersed successfully"""

    skipped: List[str] = field(default_factory=list)
    """Repositories tried and skipped before the outcome was reached"""

    cancelled: bool = False

    def __bool__(self) -> bool:
        return self.success


@dataclass(frozen=True)
class LibraryEntry:
    """A game installed through a plugin .lua file."""

    app_id: str
    lua_file: Path
    manifest_file: Optional[Path] = None

    @property
    def display_name(self) -> str:
        return os.path.basename(self.lua_file)


@dataclass(frozen=True)
class DownloadedFile:
    """A retrieved file found in the download directory."""

    name: str
    path: Path
    size: int
    file_type: str
    """Extension without the leading dot: zip, manifest or lua"""
