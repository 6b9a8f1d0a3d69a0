"""Verified origins of source code.

``KnownProvenance`` is a closed union: consumers dispatch with ``match`` and
close the match with ``assert_never`` so that a new variant cannot be ignored
silently.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeAlias, assert_never

from provgraph.domain.model.artifact import RemoteArtifact
from provgraph.domain.model.enums import VcsType
from provgraph.domain.model.vcs import VcsInfo, normalize_vcs_path

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from provgraph.domain.model.identifier import Identifier
    from provgraph.domain.model.issue import Issue


@dataclass(frozen=True, kw_only=True, slots=True)
class RepositoryProvenance:
    vcs_type: VcsType
    url: str
    requested_revision: str
    resolved_revision: str
    path: str = ""

    def __post_init__(self) -> None:
        if not self.resolved_revision.strip():
            raise ValueError("A repository provenance requires a resolved revision")
        object.__setattr__(self, "path", normalize_vcs_path(self.path))

    @classmethod
    def from_vcs(cls, vcs: VcsInfo, *, resolved_revision: str) -> RepositoryProvenance:
        return cls(
            vcs_type=vcs.type,
            url=vcs.url,
            requested_revision=vcs.revision,
            resolved_revision=resolved_revision,
            path=vcs.path,
        )

    @property
    def vcs_info(self) -> VcsInfo:
        """The VCS info as requested, i.e. with the symbolic revision."""
        return VcsInfo(
            type=self.vcs_type, url=self.url, revision=self.requested_revision, path=self.path
        )

    def pinned(self) -> VcsInfo:
        """The VCS info pinned to the resolved revision."""
        return VcsInfo(
            type=self.vcs_type, url=self.url, revision=self.resolved_revision, path=self.path
        )

    def root(self) -> RepositoryProvenance:
        """This provenance without a sub-path, i.e. the whole repository."""
        if not self.path:
            return self
        return RepositoryProvenance(
            vcs_type=self.vcs_type,
            url=self.url,
            requested_revision=self.requested_revision,
            resolved_revision=self.resolved_revision,
        )


@dataclass(frozen=True, slots=True)
class ArtifactProvenance:
    source_artifact: RemoteArtifact

    def __post_init__(self) -> None:
        if self.source_artifact.is_empty:
            raise ValueError("An artifact provenance requires a source artifact URL")


KnownProvenance: TypeAlias = "RepositoryProvenance | ArtifactProvenance"


def fingerprint(provenance: KnownProvenance) -> str:
    """Return a stable digest usable as a storage key component.

    The digest only depends on pinned data (resolved revision, artifact hash),
    so equal provenances always produce the same fingerprint.
    """

    match provenance:
        case RepositoryProvenance():
            parts = (
                "repository",
                provenance.vcs_type,
                provenance.url,
                provenance.resolved_revision,
                provenance.path,
            )
        case ArtifactProvenance(source_artifact=artifact):
            parts = ("artifact", artifact.url, artifact.hash.algorithm, artifact.hash.value)
        case _:
            assert_never(provenance)
    return hashlib.sha1("\n".join(parts).encode(), usedforsecurity=False).hexdigest()


@dataclass(frozen=True, kw_only=True, slots=True)
class PackageProvenance:
    """Outcome of resolving the provenance of one project or package.

    Exactly one of ``provenance`` and ``issue`` is set.
    """

    id: Identifier
    provenance: KnownProvenance | None = None
    issue: Issue | None = None

    def __post_init__(self) -> None:
        if (self.provenance is None) == (self.issue is None):
            raise ValueError("PackageProvenance requires exactly one of provenance or issue")

    @property
    def is_resolved(self) -> bool:
        return self.provenance is not None


@dataclass(frozen=True, kw_only=True, slots=True)
class NestedProvenance:
    """A repository together with the repositories nested in its working tree.

    ``nested_provenance`` maps paths relative to the root of the working tree
    to the provenance of the repository checked out there. The listing may be
    incomplete if, and only if, ``issue`` is set.
    """

    root: RepositoryProvenance
    nested_provenance: Mapping[str, RepositoryProvenance] = field(default_factory=dict)
    issue: Issue | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "nested_provenance",
            MappingProxyType(dict(sorted(self.nested_provenance.items()))),
        )

    @property
    def is_complete(self) -> bool:
        return self.issue is None

    def all_provenances(self) -> Iterator[RepositoryProvenance]:
        yield self.root
        yield from self.nested_provenance.values()

    def path_of(self, provenance: RepositoryProvenance) -> str | None:
        """Return the sub-path of ``provenance`` within the root, ``""`` for the root itself."""

        if provenance == self.root:
            return ""
        return next(
            (path for path, nested in self.nested_provenance.items() if nested == provenance),
            None,
        )
