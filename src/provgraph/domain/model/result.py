"""Top-level result containers handed from one pipeline stage to the next."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from provgraph.domain.model.provenance import RepositoryProvenance
from provgraph.domain.model.vcs import EMPTY_VCS_INFO, VcsInfo

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from provgraph.domain.model.enums import ScopeExcludeReason
    from provgraph.domain.model.identifier import Identifier
    from provgraph.domain.model.issue import Issue
    from provgraph.domain.model.package import Package, Project
    from provgraph.domain.model.provenance import NestedProvenance, PackageProvenance


@dataclass(frozen=True, kw_only=True, slots=True)
class ScopeExclude:
    """Marks scopes whose name matches ``pattern`` as excluded for ``reason``."""

    pattern: str
    reason: ScopeExcludeReason
    comment: str = ""

    def matches(self, scope_name: str) -> bool:
        return fnmatch.fnmatchcase(scope_name, self.pattern)


@dataclass(frozen=True, slots=True)
class RepositoryConfiguration:
    scope_excludes: tuple[ScopeExclude, ...] = ()

    def exclude_for_scope(self, scope_name: str) -> ScopeExclude | None:
        return next(
            (exclude for exclude in self.scope_excludes if exclude.matches(scope_name)), None
        )


@dataclass(frozen=True, kw_only=True, slots=True)
class Repository:
    """The repository that was analyzed."""

    vcs: VcsInfo = EMPTY_VCS_INFO
    vcs_processed: VcsInfo | None = None
    config: RepositoryConfiguration = field(default_factory=RepositoryConfiguration)

    def __post_init__(self) -> None:
        if self.vcs_processed is None:
            object.__setattr__(self, "vcs_processed", self.vcs.normalize())


@dataclass(frozen=True, kw_only=True, slots=True)
class AnalyzerResult:
    projects: frozenset[Project] = frozenset()
    packages: frozenset[Package] = frozenset()
    issues: Mapping[Identifier, tuple[Issue, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "issues",
            MappingProxyType({key: tuple(value) for key, value in self.issues.items()}),
        )
        ids = [package.id for package in self.packages]
        if len(ids) != len(set(ids)):
            raise ValueError("Packages must be unique by identifier")

    def project(self, identifier: Identifier) -> Project | None:
        return next((project for project in self.projects if project.id == identifier), None)

    def package(self, identifier: Identifier) -> Package | None:
        return next((package for package in self.packages if package.id == identifier), None)

    def issues_for(self, identifier: Identifier) -> tuple[Issue, ...]:
        return tuple(self.issues.get(identifier, ()))


@dataclass(frozen=True, kw_only=True, slots=True)
class ProvenanceResolutionResult:
    package_provenances: Mapping[Identifier, PackageProvenance] = field(default_factory=dict)
    nested_provenances: Mapping[RepositoryProvenance, NestedProvenance] = field(
        default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "package_provenances", MappingProxyType(dict(self.package_provenances))
        )
        object.__setattr__(
            self, "nested_provenances", MappingProxyType(dict(self.nested_provenances))
        )

    @classmethod
    def of(
        cls,
        package_provenances: Iterable[PackageProvenance],
        nested_provenances: Iterable[NestedProvenance] = (),
    ) -> ProvenanceResolutionResult:
        return cls(
            package_provenances={result.id: result for result in package_provenances},
            nested_provenances={nested.root: nested for nested in nested_provenances},
        )

    def provenance_for(self, identifier: Identifier) -> PackageProvenance | None:
        return self.package_provenances.get(identifier)

    def nested_for(self, root: RepositoryProvenance) -> NestedProvenance | None:
        return self.nested_provenances.get(root.root())

    def issues(self) -> dict[Identifier, tuple[Issue, ...]]:
        """Collect the issues of failed or partial resolutions per identifier."""

        collected: dict[Identifier, list[Issue]] = {}
        for identifier, result in self.package_provenances.items():
            if result.issue is not None:
                collected.setdefault(identifier, []).append(result.issue)
                continue
            if isinstance(result.provenance, RepositoryProvenance):
                nested = self.nested_for(result.provenance)
                if nested is not None and nested.issue is not None:
                    collected.setdefault(identifier, []).append(nested.issue)
        return {identifier: tuple(issues) for identifier, issues in collected.items()}


@dataclass(frozen=True, kw_only=True, slots=True)
class PipelineResult:
    """Everything the later stages need: the analyzed graph plus its provenance."""

    repository: Repository = field(default_factory=Repository)
    analyzer: AnalyzerResult = field(default_factory=AnalyzerResult)
    provenance: ProvenanceResolutionResult | None = None

    def with_provenance(self, provenance: ProvenanceResolutionResult) -> PipelineResult:
        return replace(self, provenance=provenance)
