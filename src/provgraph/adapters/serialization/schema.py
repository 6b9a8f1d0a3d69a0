"""Pydantic models describing the JSON documents exchanged between pipeline stages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def _blank_to_empty(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


class DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class VcsInfoDocument(DocumentModel):
    type: str = ""
    url: str = ""
    revision: str = ""
    path: str = ""


class HashDocument(DocumentModel):
    value: str = ""
    algorithm: str = ""


class RemoteArtifactDocument(DocumentModel):
    url: str
    hash: HashDocument | None = None


class IssueDocument(DocumentModel):
    message: str
    source: str
    severity: str = "ERROR"
    timestamp: datetime


class PackageDocument(DocumentModel):
    id: str
    vcs: VcsInfoDocument | None = None
    vcs_processed: VcsInfoDocument | None = None
    source_artifact: RemoteArtifactDocument | None = None
    binary_artifact: RemoteArtifactDocument | None = None
    description: str = ""
    homepage_url: str = ""


class PackageReferenceDocument(DocumentModel):
    id: str
    linkage: str = "DYNAMIC"
    dependencies: tuple[PackageReferenceDocument, ...] = ()
    issues: tuple[IssueDocument, ...] = ()


class ScopeDocument(DocumentModel):
    name: str
    dependencies: tuple[PackageReferenceDocument, ...] = ()


class ProjectDocument(DocumentModel):
    id: str
    definition_file_path: str = ""
    vcs: VcsInfoDocument | None = None
    vcs_processed: VcsInfoDocument | None = None
    homepage_url: str = ""
    scopes: tuple[ScopeDocument, ...] = ()


class AnalyzerResultDocument(DocumentModel):
    projects: tuple[ProjectDocument, ...] = ()
    packages: tuple[PackageDocument, ...] = ()
    issues: dict[str, tuple[IssueDocument, ...]] | None = None


class ScopeExcludeDocument(DocumentModel):
    pattern: str
    reason: str
    comment: str = ""


class RepositoryConfigurationDocument(DocumentModel):
    scope_excludes: tuple[ScopeExcludeDocument, ...] = ()


class RepositoryDocument(DocumentModel):
    vcs: VcsInfoDocument | None = None
    vcs_processed: VcsInfoDocument | None = None
    config: RepositoryConfigurationDocument | None = None


class RepositoryProvenanceDocument(DocumentModel):
    vcs_type: str = ""
    url: str
    requested_revision: str = ""
    resolved_revision: str
    path: str = ""


class PackageProvenanceDocument(DocumentModel):
    """Exactly one of ``repository``, ``source_artifact`` and ``issue`` is present."""

    id: str
    repository: RepositoryProvenanceDocument | None = None
    source_artifact: RemoteArtifactDocument | None = None
    issue: IssueDocument | None = None


class NestedProvenanceDocument(DocumentModel):
    root: RepositoryProvenanceDocument
    nested_provenance: dict[str, RepositoryProvenanceDocument] | None = None
    issue: IssueDocument | None = None


class ProvenanceResolutionDocument(DocumentModel):
    package_provenances: tuple[PackageProvenanceDocument, ...] = ()
    nested_provenances: tuple[NestedProvenanceDocument, ...] = ()


class PipelineResultDocument(DocumentModel):
    repository: RepositoryDocument | None = None
    analyzer: AnalyzerResultDocument | None = None
    provenance: ProvenanceResolutionDocument | None = None


class DependencyDefinitionDocument(DocumentModel):
    """One entry of the ``dependencies`` list of a definition file."""

    id: str
    vcs_type: str = ""
    vcs_url: str = ""
    vcs_revision: str = ""
    vcs_path: str = ""
    source_artifact_url: str = ""
    source_artifact_hash: str = ""
    is_excluded: bool = False
    is_dynamically_linked: bool = False
    dependencies: tuple[str, ...] = ()

    _normalize_text = field_validator(
        "vcs_type",
        "vcs_url",
        "vcs_revision",
        "vcs_path",
        "source_artifact_url",
        "source_artifact_hash",
        mode="before",
    )(_blank_to_empty)


class DefinitionFileDocument(DocumentModel):
    name: str = ""
    vcs_type: str = ""
    vcs_url: str = ""
    vcs_revision: str = ""
    vcs_path: str = ""
    dependencies: tuple[DependencyDefinitionDocument, ...] = ()

    _normalize_text = field_validator(
        "name", "vcs_type", "vcs_url", "vcs_revision", "vcs_path", mode="before"
    )(_blank_to_empty)
