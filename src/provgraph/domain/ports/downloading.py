"""Ports for fetching source artifacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from provgraph.domain.model import RemoteArtifact


class DownloadError(RuntimeError):
    """Raised when a source artifact cannot be fetched."""


@runtime_checkable
class Downloader(Protocol):
    def fetch(self, artifact: RemoteArtifact) -> Path:
        """Return a local file holding the content of ``artifact``."""
        ...


__all__ = ["DownloadError", "Downloader"]
