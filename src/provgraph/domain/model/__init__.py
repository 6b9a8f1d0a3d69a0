"""Public domain model surface."""

from __future__ import annotations

from provgraph.domain.model.artifact import Hash, RemoteArtifact
from provgraph.domain.model.enums import (
    HashAlgorithm,
    PackageLinkage,
    ScopeExcludeReason,
    Severity,
    SourceCodeOrigin,
    VcsType,
)
from provgraph.domain.model.errors import ValidationError
from provgraph.domain.model.identifier import UNMANAGED_TYPE, Identifier
from provgraph.domain.model.issue import Issue
from provgraph.domain.model.package import Package, PackageReference, Project, Scope
from provgraph.domain.model.provenance import (
    ArtifactProvenance,
    KnownProvenance,
    NestedProvenance,
    PackageProvenance,
    RepositoryProvenance,
    fingerprint,
)
from provgraph.domain.model.result import (
    AnalyzerResult,
    PipelineResult,
    ProvenanceResolutionResult,
    Repository,
    RepositoryConfiguration,
    ScopeExclude,
)
from provgraph.domain.model.vcs import (
    EMPTY_VCS_INFO,
    VcsInfo,
    normalize_vcs_path,
    normalize_vcs_url,
)

__all__ = [  # noqa: RUF022
    # identity
    "Identifier",
    "UNMANAGED_TYPE",
    "ValidationError",
    # vcs
    "VcsType",
    "VcsInfo",
    "EMPTY_VCS_INFO",
    "normalize_vcs_path",
    "normalize_vcs_url",
    # artifacts
    "Hash",
    "HashAlgorithm",
    "RemoteArtifact",
    # graph
    "Package",
    "PackageLinkage",
    "PackageReference",
    "Project",
    "Scope",
    "ScopeExclude",
    "ScopeExcludeReason",
    # issues
    "Issue",
    "Severity",
    # provenance
    "ArtifactProvenance",
    "KnownProvenance",
    "NestedProvenance",
    "PackageProvenance",
    "RepositoryProvenance",
    "SourceCodeOrigin",
    "fingerprint",
    # results
    "AnalyzerResult",
    "PipelineResult",
    "ProvenanceResolutionResult",
    "Repository",
    "RepositoryConfiguration",
]
