"""
depotfetch Download Subsystem

Core Components:
- interfaces: Shared data structures and probe outcomes
- probe: Single-attempt HTTP probe
- mirrors: Ordered mirror fallback for files and archives
- github_source: Branch and tree resolution through the GitHub API
- orchestrator: Sequential fallback over repositories
- files: Atomic writes, safe extraction and archive dispersal
- manifest: Plugin .lua reconciliation
- library: Installed game listing and removal
- cli_integration: Operations used by the command line
"""

from .files import ArchiveDisperser
from .github_source import RepositoryResolver
from .interfaces import (
    DispersalCounts,
    DispersalTargets,
    DownloadedFile,
    MergeResult,
    Miss,
    PathEntry,
    PathKind,
    Payload,
    RepositoryEntry,
    RepoStrategy,
    RetrievalResult,
    RevisionInfo,
    TransportError,
)
from .mirrors import MirrorFallbackFetcher
from .orchestrator import RetrievalOrchestrator
from .probe import SourceProbe

__all__ = [
    # Interfaces
    "DispersalCounts",
    "DispersalTargets",
    "DownloadedFile",
    "MergeResult",
    "Miss",
    "PathEntry",
    "PathKind",
    "Payload",
    "RepoStrategy",
    "RepositoryEntry",
    "RetrievalResult",
    "RevisionInfo",
    "TransportError",
    # Components
    "ArchiveDisperser",
    "MirrorFallbackFetcher",
    "RepositoryResolver",
    "RetrievalOrchestrator",
    "SourceProbe",
]
