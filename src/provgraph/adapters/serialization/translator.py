"""Translate between domain values and their document models.

Values equal to their default are left out of the documents (``None`` or the
field default), so that a dump with ``exclude_defaults`` only carries what was
actually set. Loading a document yields a value equal to the one dumped.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, assert_never

from provgraph.domain.assembly import DependencyDescriptor, ProjectDefinition
from provgraph.domain.model import (
    EMPTY_VCS_INFO,
    AnalyzerResult,
    ArtifactProvenance,
    Hash,
    HashAlgorithm,
    Identifier,
    Issue,
    NestedProvenance,
    Package,
    PackageLinkage,
    PackageProvenance,
    PackageReference,
    PipelineResult,
    Project,
    ProvenanceResolutionResult,
    RemoteArtifact,
    Repository,
    RepositoryConfiguration,
    RepositoryProvenance,
    Scope,
    ScopeExclude,
    ScopeExcludeReason,
    Severity,
    VcsInfo,
    VcsType,
)

from .schema import (
    AnalyzerResultDocument,
    DefinitionFileDocument,
    HashDocument,
    IssueDocument,
    NestedProvenanceDocument,
    PackageDocument,
    PackageProvenanceDocument,
    PackageReferenceDocument,
    PipelineResultDocument,
    ProjectDocument,
    ProvenanceResolutionDocument,
    RemoteArtifactDocument,
    RepositoryConfigurationDocument,
    RepositoryDocument,
    RepositoryProvenanceDocument,
    ScopeDocument,
    ScopeExcludeDocument,
    VcsInfoDocument,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)


# --- VCS and artifacts -----------------------------------------------------


def vcs_to_document(vcs: VcsInfo) -> VcsInfoDocument | None:
    if vcs == EMPTY_VCS_INFO:
        return None
    return VcsInfoDocument(type=vcs.type.value, url=vcs.url, revision=vcs.revision, path=vcs.path)


def vcs_from_document(document: VcsInfoDocument | None) -> VcsInfo:
    if document is None:
        return EMPTY_VCS_INFO
    return VcsInfo(
        type=VcsType(document.type),
        url=document.url,
        revision=document.revision,
        path=document.path,
    )


def _processed_to_document(vcs: VcsInfo, processed: VcsInfo | None) -> VcsInfoDocument | None:
    # only kept when it differs from what normalizing ``vcs`` gives
    if processed is None or processed == vcs.normalize():
        return None
    return VcsInfoDocument(
        type=processed.type.value,
        url=processed.url,
        revision=processed.revision,
        path=processed.path,
    )


def _processed_from_document(document: VcsInfoDocument | None) -> VcsInfo | None:
    return vcs_from_document(document) if document is not None else None


def artifact_to_document(artifact: RemoteArtifact) -> RemoteArtifactDocument | None:
    if artifact == RemoteArtifact():
        return None
    hash_document = None
    if artifact.hash != Hash.NONE:
        hash_document = HashDocument(
            value=artifact.hash.value, algorithm=artifact.hash.algorithm.value
        )
    return RemoteArtifactDocument(url=artifact.url, hash=hash_document)


def artifact_from_document(document: RemoteArtifactDocument | None) -> RemoteArtifact:
    if document is None:
        return RemoteArtifact()
    digest = Hash.NONE
    if document.hash is not None:
        digest = Hash(value=document.hash.value, algorithm=HashAlgorithm(document.hash.algorithm))
    return RemoteArtifact(url=document.url, hash=digest)


# --- issues ----------------------------------------------------------------


def issue_to_document(issue: Issue) -> IssueDocument:
    return IssueDocument(
        message=issue.message,
        source=issue.source,
        severity=issue.severity.value,
        timestamp=issue.timestamp,
    )


def issue_from_document(document: IssueDocument) -> Issue:
    return Issue(
        message=document.message,
        source=document.source,
        severity=Severity(document.severity),
        timestamp=document.timestamp,
    )


# --- dependency graph ------------------------------------------------------


def reference_to_document(reference: PackageReference) -> PackageReferenceDocument:
    return PackageReferenceDocument(
        id=reference.id.to_coordinates(),
        linkage=reference.linkage.value,
        dependencies=tuple(reference_to_document(child) for child in reference.children),
        issues=tuple(issue_to_document(issue) for issue in reference.issues),
    )


def reference_from_document(document: PackageReferenceDocument) -> PackageReference:
    return PackageReference(
        id=Identifier.parse(document.id),
        linkage=PackageLinkage(document.linkage),
        children=tuple(reference_from_document(child) for child in document.dependencies),
        issues=tuple(issue_from_document(issue) for issue in document.issues),
    )


def _sorted_references(references: Iterable[PackageReference]) -> list[PackageReference]:
    return sorted(references, key=lambda reference: (reference.id, reference.linkage))


def scope_to_document(scope: Scope) -> ScopeDocument:
    return ScopeDocument(
        name=scope.name,
        dependencies=tuple(
            reference_to_document(reference)
            for reference in _sorted_references(scope.dependencies)
        ),
    )


def scope_from_document(document: ScopeDocument) -> Scope:
    return Scope(
        document.name,
        frozenset(reference_from_document(reference) for reference in document.dependencies),
    )


def project_to_document(project: Project) -> ProjectDocument:
    return ProjectDocument(
        id=project.id.to_coordinates(),
        definition_file_path=project.definition_file_path,
        vcs=vcs_to_document(project.vcs),
        vcs_processed=_processed_to_document(project.vcs, project.vcs_processed),
        homepage_url=project.homepage_url,
        scopes=tuple(
            scope_to_document(scope) for scope in sorted(project.scopes, key=lambda s: s.name)
        ),
    )


def project_from_document(document: ProjectDocument) -> Project:
    return Project(
        id=Identifier.parse(document.id),
        definition_file_path=document.definition_file_path,
        vcs=vcs_from_document(document.vcs),
        vcs_processed=_processed_from_document(document.vcs_processed),
        homepage_url=document.homepage_url,
        scopes=frozenset(scope_from_document(scope) for scope in document.scopes),
    )


def package_to_document(package: Package) -> PackageDocument:
    return PackageDocument(
        id=package.id.to_coordinates(),
        vcs=vcs_to_document(package.vcs),
        vcs_processed=_processed_to_document(package.vcs, package.vcs_processed),
        source_artifact=artifact_to_document(package.source_artifact),
        binary_artifact=artifact_to_document(package.binary_artifact),
        description=package.description,
        homepage_url=package.homepage_url,
    )


def package_from_document(document: PackageDocument) -> Package:
    return Package(
        id=Identifier.parse(document.id),
        vcs=vcs_from_document(document.vcs),
        vcs_processed=_processed_from_document(document.vcs_processed),
        source_artifact=artifact_from_document(document.source_artifact),
        binary_artifact=artifact_from_document(document.binary_artifact),
        description=document.description,
        homepage_url=document.homepage_url,
    )


def analyzer_to_document(analyzer: AnalyzerResult) -> AnalyzerResultDocument:
    issues = {
        identifier.to_coordinates(): tuple(issue_to_document(issue) for issue in issues)
        for identifier, issues in sorted(analyzer.issues.items())
    }
    return AnalyzerResultDocument(
        projects=tuple(
            project_to_document(project) for project in sorted(analyzer.projects, key=_by_id)
        ),
        packages=tuple(
            package_to_document(package) for package in sorted(analyzer.packages, key=_by_id)
        ),
        issues=issues or None,
    )


def analyzer_from_document(document: AnalyzerResultDocument | None) -> AnalyzerResult:
    if document is None:
        return AnalyzerResult()
    return AnalyzerResult(
        projects=frozenset(project_from_document(project) for project in document.projects),
        packages=frozenset(package_from_document(package) for package in document.packages),
        issues={
            Identifier.parse(coordinates): tuple(issue_from_document(issue) for issue in issues)
            for coordinates, issues in (document.issues or {}).items()
        },
    )


def _by_id(item: Package | Project) -> Identifier:
    return item.id


# --- repository ------------------------------------------------------------


def repository_to_document(repository: Repository) -> RepositoryDocument | None:
    config = None
    if repository.config.scope_excludes:
        config = RepositoryConfigurationDocument(
            scope_excludes=tuple(
                ScopeExcludeDocument(
                    pattern=exclude.pattern, reason=exclude.reason.value, comment=exclude.comment
                )
                for exclude in repository.config.scope_excludes
            )
        )
    document = RepositoryDocument(
        vcs=vcs_to_document(repository.vcs),
        vcs_processed=_processed_to_document(repository.vcs, repository.vcs_processed),
        config=config,
    )
    return document if document != RepositoryDocument() else None


def repository_from_document(document: RepositoryDocument | None) -> Repository:
    if document is None:
        return Repository()
    excludes = document.config.scope_excludes if document.config is not None else ()
    return Repository(
        vcs=vcs_from_document(document.vcs),
        vcs_processed=_processed_from_document(document.vcs_processed),
        config=RepositoryConfiguration(
            scope_excludes=tuple(
                ScopeExclude(
                    pattern=exclude.pattern,
                    reason=ScopeExcludeReason(exclude.reason),
                    comment=exclude.comment,
                )
                for exclude in excludes
            )
        ),
    )


# --- provenance ------------------------------------------------------------


def repository_provenance_to_document(
    provenance: RepositoryProvenance,
) -> RepositoryProvenanceDocument:
    return RepositoryProvenanceDocument(
        vcs_type=provenance.vcs_type.value,
        url=provenance.url,
        requested_revision=provenance.requested_revision,
        resolved_revision=provenance.resolved_revision,
        path=provenance.path,
    )


def repository_provenance_from_document(
    document: RepositoryProvenanceDocument,
) -> RepositoryProvenance:
    return RepositoryProvenance(
        vcs_type=VcsType(document.vcs_type),
        url=document.url,
        requested_revision=document.requested_revision,
        resolved_revision=document.resolved_revision,
        path=document.path,
    )


def package_provenance_to_document(result: PackageProvenance) -> PackageProvenanceDocument:
    repository = None
    source_artifact = None
    match result.provenance:
        case None:
            pass
        case RepositoryProvenance():
            repository = repository_provenance_to_document(result.provenance)
        case ArtifactProvenance(source_artifact=artifact):
            source_artifact = artifact_to_document(artifact)
        case _:
            assert_never(result.provenance)
    return PackageProvenanceDocument(
        id=result.id.to_coordinates(),
        repository=repository,
        source_artifact=source_artifact,
        issue=issue_to_document(result.issue) if result.issue is not None else None,
    )


def package_provenance_from_document(document: PackageProvenanceDocument) -> PackageProvenance:
    provenance: RepositoryProvenance | ArtifactProvenance | None = None
    if document.repository is not None and document.source_artifact is not None:
        raise ValueError(
            f"Provenance of '{document.id}' names both a repository and a source artifact"
        )
    if document.repository is not None:
        provenance = repository_provenance_from_document(document.repository)
    elif document.source_artifact is not None:
        provenance = ArtifactProvenance(artifact_from_document(document.source_artifact))
    return PackageProvenance(
        id=Identifier.parse(document.id),
        provenance=provenance,
        issue=issue_from_document(document.issue) if document.issue is not None else None,
    )


def nested_provenance_to_document(result: NestedProvenance) -> NestedProvenanceDocument:
    nested = {
        path: repository_provenance_to_document(provenance)
        for path, provenance in result.nested_provenance.items()
    }
    return NestedProvenanceDocument(
        root=repository_provenance_to_document(result.root),
        nested_provenance=nested or None,
        issue=issue_to_document(result.issue) if result.issue is not None else None,
    )


def nested_provenance_from_document(document: NestedProvenanceDocument) -> NestedProvenance:
    return NestedProvenance(
        root=repository_provenance_from_document(document.root),
        nested_provenance={
            path: repository_provenance_from_document(provenance)
            for path, provenance in (document.nested_provenance or {}).items()
        },
        issue=issue_from_document(document.issue) if document.issue is not None else None,
    )


def resolution_to_document(result: ProvenanceResolutionResult) -> ProvenanceResolutionDocument:
    return ProvenanceResolutionDocument(
        package_provenances=tuple(
            package_provenance_to_document(result.package_provenances[identifier])
            for identifier in sorted(result.package_provenances)
        ),
        nested_provenances=tuple(
            nested_provenance_to_document(nested)
            for _, nested in sorted(
                result.nested_provenances.items(),
                key=lambda item: (item[0].url, item[0].resolved_revision),
            )
        ),
    )


def resolution_from_document(document: ProvenanceResolutionDocument) -> ProvenanceResolutionResult:
    return ProvenanceResolutionResult.of(
        (package_provenance_from_document(item) for item in document.package_provenances),
        (nested_provenance_from_document(item) for item in document.nested_provenances),
    )


# --- pipeline result -------------------------------------------------------


def result_to_document(result: PipelineResult) -> PipelineResultDocument:
    analyzer = analyzer_to_document(result.analyzer)
    return PipelineResultDocument(
        repository=repository_to_document(result.repository),
        analyzer=analyzer if analyzer != AnalyzerResultDocument() else None,
        provenance=(
            resolution_to_document(result.provenance) if result.provenance is not None else None
        ),
    )


def result_from_document(document: PipelineResultDocument) -> PipelineResult:
    return PipelineResult(
        repository=repository_from_document(document.repository),
        analyzer=analyzer_from_document(document.analyzer),
        provenance=(
            resolution_from_document(document.provenance)
            if document.provenance is not None
            else None
        ),
    )


# --- definition files ------------------------------------------------------


def definition_from_document(
    document: DefinitionFileDocument, *, definition_file_path: str = ""
) -> ProjectDefinition:
    dependencies = tuple(
        DependencyDescriptor(
            id=Identifier.parse(dependency.id),
            vcs_type=VcsType.for_name(dependency.vcs_type),
            vcs_url=dependency.vcs_url,
            vcs_revision=dependency.vcs_revision,
            vcs_path=dependency.vcs_path,
            source_artifact_url=dependency.source_artifact_url,
            source_artifact_hash=dependency.source_artifact_hash,
            is_excluded=dependency.is_excluded,
            is_dynamically_linked=dependency.is_dynamically_linked,
            dependencies=tuple(Identifier.parse(child) for child in dependency.dependencies),
        )
        for dependency in document.dependencies
    )
    log.debug("Read %s dependencies of '%s'", len(dependencies), document.name)
    return ProjectDefinition(
        name=document.name,
        vcs=VcsInfo(
            type=VcsType.for_name(document.vcs_type),
            url=document.vcs_url,
            revision=document.vcs_revision,
            path=document.vcs_path,
        ),
        definition_file_path=definition_file_path,
        dependencies=dependencies,
    )
