"""Domain port definitions for adapters."""

from __future__ import annotations

from .caching import ProvenanceCache
from .downloading import DownloadError, Downloader
from .issues import CollectingIssueSink, IssueSink
from .storage import (
    FileStorage,
    KeyNotFoundError,
    PathViolationError,
    StorageError,
    StorageIOError,
)
from .vcs import VcsError, VersionControlSystem, WorkingTree, system_for, working_tree_for

__all__ = [
    "CollectingIssueSink",
    "DownloadError",
    "Downloader",
    "FileStorage",
    "IssueSink",
    "KeyNotFoundError",
    "PathViolationError",
    "ProvenanceCache",
    "StorageError",
    "StorageIOError",
    "VcsError",
    "VersionControlSystem",
    "WorkingTree",
    "system_for",
    "working_tree_for",
]
