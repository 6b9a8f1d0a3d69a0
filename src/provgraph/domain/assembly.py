"""Build an analyzer result from flat dependency descriptors.

Every descriptor is a direct dependency of the project. Descriptors may name
other descriptors as their own dependencies; those references are expanded
into ``PackageReference`` trees, with cycles cut where an identifier would
re-appear on its own path. Package metadata is collapsed into one ``Package``
per identifier regardless of how often that identifier occurs.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final, TypeAlias

from provgraph.domain.model import (
    EMPTY_VCS_INFO,
    AnalyzerResult,
    Hash,
    Identifier,
    Package,
    PackageLinkage,
    PackageReference,
    PipelineResult,
    Project,
    RemoteArtifact,
    Repository,
    RepositoryConfiguration,
    Scope,
    ScopeExclude,
    ScopeExcludeReason,
    ValidationError,
    VcsInfo,
    VcsType,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

log = getLogger(__name__)

MAIN_SCOPE_NAME: Final[str] = "main"
EXCLUDED_SCOPE_NAME: Final[str] = "excluded"


@dataclass(frozen=True, kw_only=True, slots=True)
class DependencyDescriptor:
    """Raw description of one dependency, as found in a definition file."""

    id: Identifier
    vcs_type: VcsType = VcsType.UNKNOWN
    vcs_url: str = ""
    vcs_revision: str = ""
    vcs_path: str = ""
    source_artifact_url: str = ""
    source_artifact_hash: str = ""
    is_excluded: bool = False
    is_dynamically_linked: bool = False
    dependencies: tuple[Identifier, ...] = ()

    @property
    def vcs(self) -> VcsInfo:
        return VcsInfo(
            type=self.vcs_type, url=self.vcs_url, revision=self.vcs_revision, path=self.vcs_path
        )

    @property
    def linkage(self) -> PackageLinkage:
        return PackageLinkage.DYNAMIC if self.is_dynamically_linked else PackageLinkage.STATIC

    def to_package(self) -> Package:
        source_artifact = RemoteArtifact()
        if self.source_artifact_url.strip():
            digest = self.source_artifact_hash.strip()
            source_artifact = RemoteArtifact(
                url=self.source_artifact_url.strip(),
                hash=Hash.create(digest) if digest else Hash.NONE,
            )
        return Package(id=self.id, vcs=self.vcs, source_artifact=source_artifact)


@dataclass(frozen=True, kw_only=True, slots=True)
class ProjectDefinition:
    """A project described by hand instead of by a package manager."""

    name: str = ""
    vcs: VcsInfo = EMPTY_VCS_INFO
    definition_file_path: str = ""
    dependencies: tuple[DependencyDescriptor, ...] = ()


@dataclass(frozen=True, slots=True)
class ScopePartition:
    main: Scope
    excluded: Scope
    excludes: tuple[ScopeExclude, ...]

    @property
    def scopes(self) -> frozenset[Scope]:
        return frozenset((self.main, self.excluded))

    def exclude_reason_for(self, identifier: Identifier) -> ScopeExcludeReason | None:
        """Return why ``identifier`` was excluded, or ``None`` if it is a main dependency."""

        if not any(reference.id == identifier for reference in self.excluded.dependencies):
            return None
        exclude = next(
            (exclude for exclude in self.excludes if exclude.matches(self.excluded.name)), None
        )
        return exclude.reason if exclude is not None else None


ExcludePredicate: TypeAlias = "Callable[[DependencyDescriptor], bool]"


def is_marked_excluded(descriptor: DependencyDescriptor) -> bool:
    return descriptor.is_excluded


def validate_descriptors(descriptors: Sequence[DependencyDescriptor]) -> None:
    """Raise :class:`ValidationError` listing every malformed descriptor."""

    problems: list[str] = []
    known = {descriptor.id for descriptor in descriptors}
    for position, descriptor in enumerate(descriptors):
        missing = [
            name
            for name, value in (("type", descriptor.id.type), ("name", descriptor.id.name))
            if not value.strip()
        ]
        if missing:
            problems.append(
                f"Dependency #{position} ('{descriptor.id}') is missing {' and '.join(missing)}"
            )
        problems.extend(
            f"Dependency '{descriptor.id}' refers to unknown dependency '{child}'"
            for child in descriptor.dependencies
            if child not in known
        )
    if problems:
        raise ValidationError(problems)


def _index(descriptors: Iterable[DependencyDescriptor]) -> dict[Identifier, DependencyDescriptor]:
    index: dict[Identifier, DependencyDescriptor] = {}
    for descriptor in descriptors:
        existing = index.get(descriptor.id)
        if existing is None:
            index[descriptor.id] = descriptor
        elif existing != descriptor:
            log.warning(
                "Ignoring conflicting duplicate of '%s'; the first occurrence wins", descriptor.id
            )
    return index


def build_reference(
    descriptor: DependencyDescriptor,
    index: Mapping[Identifier, DependencyDescriptor],
    *,
    shared: dict[Identifier, PackageReference] | None = None,
) -> PackageReference:
    """Expand ``descriptor`` into a reference tree, cutting cycles.

    Subtrees without a cut cycle do not depend on the path that leads to them
    and are built once, then shared by every parent; pass the same ``shared``
    mapping to share them across several roots.
    """

    reference, _ = _expand(descriptor, index, frozenset(), {} if shared is None else shared)
    return reference


def _expand(
    descriptor: DependencyDescriptor,
    index: Mapping[Identifier, DependencyDescriptor],
    ancestors: frozenset[Identifier],
    shared: dict[Identifier, PackageReference],
) -> tuple[PackageReference, bool]:
    known = shared.get(descriptor.id)
    if known is not None:
        return known, False

    path = ancestors | {descriptor.id}
    children: list[PackageReference] = []
    cut = False
    for child_id in descriptor.dependencies:
        if child_id in path:
            log.debug("Breaking dependency cycle at '%s' -> '%s'", descriptor.id, child_id)
            cut = True
            continue
        child, child_cut = _expand(index[child_id], index, path, shared)
        children.append(child)
        cut = cut or child_cut

    reference = PackageReference(
        id=descriptor.id, linkage=descriptor.linkage, children=tuple(children)
    )
    if not cut:
        shared[descriptor.id] = reference
    return reference, cut


def partition_scopes(
    descriptors: Sequence[DependencyDescriptor],
    exclude_predicate: ExcludePredicate = is_marked_excluded,
    *,
    reason: ScopeExcludeReason = ScopeExcludeReason.DEV_DEPENDENCY_OF,
) -> ScopePartition:
    """Split ``descriptors`` into the ``main`` and ``excluded`` scopes."""

    validate_descriptors(descriptors)
    index = _index(descriptors)

    main: set[PackageReference] = set()
    excluded: set[PackageReference] = set()
    shared: dict[Identifier, PackageReference] = {}
    for descriptor in index.values():
        target = excluded if exclude_predicate(descriptor) else main
        target.add(build_reference(descriptor, index, shared=shared))

    return ScopePartition(
        main=Scope(MAIN_SCOPE_NAME, frozenset(main)),
        excluded=Scope(EXCLUDED_SCOPE_NAME, frozenset(excluded)),
        excludes=(ScopeExclude(pattern=EXCLUDED_SCOPE_NAME, reason=reason),),
    )


def assemble_packages(descriptors: Sequence[DependencyDescriptor]) -> frozenset[Package]:
    validate_descriptors(descriptors)
    return frozenset(descriptor.to_package() for descriptor in _index(descriptors).values())


def assemble_result(
    definition: ProjectDefinition,
    exclude_predicate: ExcludePredicate = is_marked_excluded,
) -> PipelineResult:
    """Turn a project definition into a complete, immutable pipeline result.

    Either the whole result is built or :class:`ValidationError` is raised;
    nothing partial is returned.
    """

    partition = partition_scopes(definition.dependencies, exclude_predicate)
    packages = assemble_packages(definition.dependencies)

    project = Project(
        id=Identifier.for_unmanaged(definition.name),
        definition_file_path=definition.definition_file_path,
        vcs=definition.vcs,
        scopes=partition.scopes,
    )
    log.info(
        "Assembled project '%s' with %s main and %s excluded dependencies, %s packages",
        project.id,
        len(partition.main.dependencies),
        len(partition.excluded.dependencies),
        len(packages),
    )

    return PipelineResult(
        repository=Repository(
            vcs=definition.vcs,
            config=RepositoryConfiguration(scope_excludes=partition.excludes),
        ),
        analyzer=AnalyzerResult(projects=frozenset({project}), packages=packages),
    )
