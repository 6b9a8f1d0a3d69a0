"""Ports for the version control capability."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from provgraph.domain.model import RepositoryProvenance, VcsInfo, VcsType


class VcsError(RuntimeError):
    """Raised by VCS implementations when a command against a repository fails."""


@runtime_checkable
class WorkingTree(Protocol):
    """A checked out working tree of one repository."""

    @property
    def vcs_type(self) -> VcsType: ...

    @property
    def root(self) -> Path: ...

    def get_remote_url(self) -> str: ...

    def get_revision(self) -> str: ...

    def get_path_to_root(self, path: Path) -> str:
        """Return ``path`` relative to the root of the working tree, in POSIX form."""
        ...


@runtime_checkable
class VersionControlSystem(Protocol):
    """Capability to inspect, pin and check out repositories of one VCS type."""

    @property
    def vcs_type(self) -> VcsType: ...

    def for_directory(self, path: Path) -> WorkingTree | None:
        """Return the working tree ``path`` belongs to, or ``None`` if it is not versioned."""
        ...

    def pin_revision(self, vcs: VcsInfo, revision: str) -> str:
        """Turn a symbolic ``revision`` (branch, tag) into a concrete one.

        Raises :class:`VcsError` if the revision does not exist.
        """
        ...

    def checkout(self, provenance: RepositoryProvenance, target: Path) -> WorkingTree: ...


def working_tree_for(
    systems: tuple[VersionControlSystem, ...], path: Path
) -> WorkingTree | None:
    """Ask each system in turn for the working tree containing ``path``."""

    for system in systems:
        tree = system.for_directory(path)
        if tree is not None:
            return tree
    return None


def system_for(
    systems: tuple[VersionControlSystem, ...], vcs_type: VcsType
) -> VersionControlSystem | None:
    return next((system for system in systems if system.vcs_type == vcs_type), None)


__all__ = [
    "VcsError",
    "VersionControlSystem",
    "WorkingTree",
    "system_for",
    "working_tree_for",
]
