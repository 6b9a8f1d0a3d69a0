"""Resolve the provenance of a whole analyzer result in parallel."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from provgraph.config.resolver import ResolverConfig
from provgraph.domain.model import (
    Issue,
    NestedProvenance,
    Package,
    PackageProvenance,
    ProvenanceResolutionResult,
    RepositoryProvenance,
)
from provgraph.domain.resolution.package_provenance import ISSUE_SOURCE
from provgraph.domain.resolution.workers import WorkerPool

if TYPE_CHECKING:
    from collections.abc import Iterable

    from provgraph.domain.model import AnalyzerResult, Identifier, Project, RemoteArtifact, VcsInfo
    from provgraph.domain.ports import IssueSink
    from provgraph.domain.resolution.nested_provenance import NestedProvenanceResolver
    from provgraph.domain.resolution.package_provenance import PackageProvenanceResolver

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionTarget:
    id: Identifier
    vcs: VcsInfo
    source_artifact: RemoteArtifact | None = None

    @classmethod
    def of(cls, item: Package | Project) -> ResolutionTarget:
        artifact = item.source_artifact if isinstance(item, Package) else None
        return cls(id=item.id, vcs=item.processed_vcs, source_artifact=artifact)


def targets_of(analyzer: AnalyzerResult) -> tuple[ResolutionTarget, ...]:
    """Projects first, then packages, each sorted by identifier."""

    projects = sorted(analyzer.projects, key=lambda project: project.id)
    packages = sorted(analyzer.packages, key=lambda package: package.id)
    return tuple(ResolutionTarget.of(item) for item in (*projects, *packages))


class ProvenanceResolutionRunner:
    """Fan provenance resolution out over a bounded pool of workers.

    Every identifier is resolved independently and under its own timeout; a
    failure or timeout only affects the result of that identifier. Nested
    provenance is resolved once per distinct repository.
    """

    def __init__(
        self,
        *,
        package_resolver: PackageProvenanceResolver,
        nested_resolver: NestedProvenanceResolver | None = None,
        config: ResolverConfig | None = None,
        issue_sink: IssueSink | None = None,
    ) -> None:
        self._packages = package_resolver
        self._nested = nested_resolver
        self._config = config or ResolverConfig()
        self._issue_sink = issue_sink

    def run(self, analyzer: AnalyzerResult) -> ProvenanceResolutionResult:
        return self.run_targets(targets_of(analyzer))

    def run_targets(self, targets: Iterable[ResolutionTarget]) -> ProvenanceResolutionResult:
        return asyncio.run(self._run_async(tuple(targets)))

    async def _run_async(
        self, targets: tuple[ResolutionTarget, ...]
    ) -> ProvenanceResolutionResult:
        log.info(
            "Resolving provenance of %s identifiers with %s workers",
            len(targets),
            self._config.max_workers,
        )
        with WorkerPool(self._config.max_workers) as pool:
            slots = asyncio.Semaphore(self._config.max_workers)
            package_results = await asyncio.gather(
                *(self._resolve_target(target, pool=pool, slots=slots) for target in targets)
            )

            roots = _distinct_roots(package_results)
            nested_results: list[NestedProvenance] = []
            if self._nested is not None and roots:
                nested_results = list(
                    await asyncio.gather(
                        *(self._resolve_nested(root, pool=pool, slots=slots) for root in roots)
                    )
                )

        result = ProvenanceResolutionResult.of(package_results, nested_results)
        self._report(result)
        resolved = sum(1 for item in package_results if item.is_resolved)
        log.info(
            "Resolved provenance of %s of %s identifiers, %s nested lookups",
            resolved,
            len(package_results),
            len(nested_results),
        )
        return result

    async def _resolve_target(
        self, target: ResolutionTarget, *, pool: WorkerPool, slots: asyncio.Semaphore
    ) -> PackageProvenance:
        async with slots:
            try:
                return await asyncio.wait_for(
                    self._packages.resolve_async(
                        target.id,
                        vcs=target.vcs,
                        source_artifact=target.source_artifact,
                        pool=pool,
                    ),
                    timeout=self._config.timeout_seconds,
                )
            except TimeoutError:
                message = (
                    f"Resolving provenance of '{target.id}' timed out after "
                    f"{self._config.timeout_seconds} seconds"
                )
                log.warning("%s", message)
            except Exception as exc:
                message = f"Resolving provenance of '{target.id}' failed: {_describe(exc)}"
                log.exception("%s", message)
            return PackageProvenance(
                id=target.id, issue=Issue(message=message, source=ISSUE_SOURCE)
            )

    async def _resolve_nested(
        self, root: RepositoryProvenance, *, pool: WorkerPool, slots: asyncio.Semaphore
    ) -> NestedProvenance:
        assert self._nested is not None
        async with slots:
            try:
                return await asyncio.wait_for(
                    self._nested.resolve_async(root, pool=pool),
                    timeout=self._config.timeout_seconds,
                )
            except TimeoutError:
                message = (
                    f"Resolving nested repositories of '{root.url}' timed out after "
                    f"{self._config.timeout_seconds} seconds"
                )
                log.warning("%s", message)
            except Exception as exc:
                message = (
                    f"Resolving nested repositories of '{root.url}' failed: {_describe(exc)}"
                )
                log.exception("%s", message)
            return NestedProvenance(
                root=root, issue=Issue(message=message, source=ISSUE_SOURCE)
            )

    def _report(self, result: ProvenanceResolutionResult) -> None:
        if self._issue_sink is None:
            return
        for identifier, issues in result.issues().items():
            for issue in issues:
                self._issue_sink.add(identifier, issue)


def _distinct_roots(results: Iterable[PackageProvenance]) -> list[RepositoryProvenance]:
    roots: dict[RepositoryProvenance, None] = {}
    for result in results:
        if isinstance(result.provenance, RepositoryProvenance):
            roots.setdefault(result.provenance.root(), None)
    return list(roots)


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
