"""Packages, projects, scopes and the dependency trees between them.

Package metadata is held once per identifier in a flat set (see
``AnalyzerResult.packages``). Dependency trees only carry identifiers, linkage
and children, so a package that is reachable on many paths (diamond
dependencies) never has its metadata duplicated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from provgraph.domain.model.artifact import RemoteArtifact
from provgraph.domain.model.enums import PackageLinkage
from provgraph.domain.model.vcs import EMPTY_VCS_INFO, VcsInfo

if TYPE_CHECKING:
    from collections.abc import Iterator

    from provgraph.domain.model.identifier import Identifier
    from provgraph.domain.model.issue import Issue


@dataclass(frozen=True, kw_only=True, slots=True)
class Package:
    id: Identifier
    vcs: VcsInfo = EMPTY_VCS_INFO
    # derived from ``vcs`` unless given explicitly
    vcs_processed: VcsInfo | None = None
    source_artifact: RemoteArtifact = field(default_factory=RemoteArtifact)
    binary_artifact: RemoteArtifact = field(default_factory=RemoteArtifact)
    description: str = ""
    homepage_url: str = ""

    def __post_init__(self) -> None:
        if self.vcs_processed is None:
            object.__setattr__(self, "vcs_processed", self.vcs.normalize())

    @property
    def processed_vcs(self) -> VcsInfo:
        return self.vcs_processed or self.vcs.normalize()


@dataclass(frozen=True, kw_only=True, slots=True)
class PackageReference:
    """A node of a dependency tree."""

    id: Identifier
    linkage: PackageLinkage = PackageLinkage.DYNAMIC
    children: tuple[PackageReference, ...] = ()
    issues: tuple[Issue, ...] = ()
    # trees share subtrees, so the recursive hash is computed once per node
    _hash: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        unique = tuple(dict.fromkeys(self.children))
        if len(unique) != len(self.children):
            object.__setattr__(self, "children", unique)
        object.__setattr__(
            self, "_hash", hash((self.id, self.linkage, self.children, self.issues))
        )

    def __hash__(self) -> int:
        return self._hash

    def walk(self) -> Iterator[PackageReference]:
        """Yield this node and all of its descendants, depth first."""

        yield self
        for child in self.children:
            yield from child.walk()

    def depends_on(self, identifier: Identifier) -> bool:
        return any(node.id == identifier for child in self.children for node in child.walk())


@dataclass(frozen=True, slots=True)
class Scope:
    """A named partition of a project's dependencies."""

    name: str
    dependencies: frozenset[PackageReference] = frozenset()

    def walk(self) -> Iterator[PackageReference]:
        for reference in sorted(self.dependencies, key=lambda ref: ref.id):
            yield from reference.walk()

    def collect_dependencies(self, *, max_depth: int | None = None) -> frozenset[Identifier]:
        """Return the identifiers reachable from this scope up to ``max_depth`` levels."""

        collected: set[Identifier] = set()
        shallowest: dict[PackageReference, int] = {}
        pending = [(reference, 1) for reference in self.dependencies]
        while pending:
            reference, depth = pending.pop()
            if max_depth is not None and depth > max_depth:
                continue
            if shallowest.get(reference, depth + 1) <= depth:
                continue
            shallowest[reference] = depth
            collected.add(reference.id)
            pending.extend((child, depth + 1) for child in reference.children)
        return frozenset(collected)


@dataclass(frozen=True, kw_only=True, slots=True)
class Project:
    id: Identifier
    definition_file_path: str = ""
    vcs: VcsInfo = EMPTY_VCS_INFO
    vcs_processed: VcsInfo | None = None
    homepage_url: str = ""
    scopes: frozenset[Scope] = frozenset()

    def __post_init__(self) -> None:
        if self.vcs_processed is None:
            object.__setattr__(self, "vcs_processed", self.vcs.normalize())
        names = [scope.name for scope in self.scopes]
        if len(names) != len(set(names)):
            raise ValueError(f"Scope names of project {self.id} must be unique: {sorted(names)}")

    @property
    def processed_vcs(self) -> VcsInfo:
        return self.vcs_processed or self.vcs.normalize()

    @property
    def scope_names(self) -> tuple[str, ...]:
        return tuple(sorted(scope.name for scope in self.scopes))

    def scope(self, name: str) -> Scope | None:
        return next((scope for scope in self.scopes if scope.name == name), None)

    def collect_dependencies(
        self, *, max_depth: int | None = None, scope_names: frozenset[str] | None = None
    ) -> frozenset[Identifier]:
        collected: set[Identifier] = set()
        for scope in self.scopes:
            if scope_names is not None and scope.name not in scope_names:
                continue
            collected |= scope.collect_dependencies(max_depth=max_depth)
        return frozenset(collected)
