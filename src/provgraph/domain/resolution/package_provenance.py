"""Resolve where the source code of a single project or package comes from."""

from __future__ import annotations

import asyncio
import hashlib
import re
from logging import getLogger
from typing import TYPE_CHECKING, Final, assert_never

from provgraph.config.resolver import DEFAULT_SOURCE_CODE_ORIGINS
from provgraph.domain.model import (
    ArtifactProvenance,
    Issue,
    Package,
    PackageProvenance,
    RepositoryProvenance,
    SourceCodeOrigin,
)
from provgraph.domain.ports import (
    DownloadError,
    StorageError,
    VcsError,
    system_for,
)
from provgraph.domain.resolution.workers import WorkerPool

if TYPE_CHECKING:
    from collections.abc import Sequence

    from provgraph.domain.model import (
        Identifier,
        KnownProvenance,
        Project,
        RemoteArtifact,
        VcsInfo,
    )
    from provgraph.domain.ports import Downloader, ProvenanceCache, VersionControlSystem

log = getLogger(__name__)

ISSUE_SOURCE: Final[str] = "ProvenanceResolver"
_FIXED_REVISION = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")


class ResolutionFailure(Exception):
    """One source code origin could not be resolved; turned into an Issue by the caller."""


def revision_candidates(identifier: Identifier, vcs: VcsInfo) -> tuple[str, ...]:
    """Return the revisions to try, most specific first.

    The declared revision comes first; tags commonly derived from the version
    follow as fallbacks for packages that only declare a repository URL.
    """

    candidates: list[str] = []
    if vcs.revision.strip():
        candidates.append(vcs.revision.strip())
    version = identifier.version.strip()
    if version:
        candidates.extend((version, f"v{version}", f"{identifier.name}-{version}"))
    return tuple(dict.fromkeys(candidates))


def is_fixed_revision(revision: str) -> bool:
    """Whether ``revision`` is a full commit hash rather than a movable name."""
    return bool(_FIXED_REVISION.match(revision.strip().lower()))


def request_fingerprint(
    vcs: VcsInfo | None,
    source_artifact: RemoteArtifact | None,
    origins: Sequence[SourceCodeOrigin],
) -> str | None:
    """Return a cache key for a resolution input, or ``None`` if it must not be cached.

    Only inputs that are pinned (a full commit hash, or an artifact) always
    resolve to the same provenance.
    """

    if vcs is not None and vcs.url and not is_fixed_revision(vcs.revision):
        return None
    parts = [",".join(origins)]
    if vcs is not None:
        parts.extend((vcs.type, vcs.url, vcs.revision, vcs.path))
    if source_artifact is not None:
        parts.extend((source_artifact.url, source_artifact.hash.value))
    return hashlib.sha1("\n".join(parts).encode(), usedforsecurity=False).hexdigest()


class PackageProvenanceResolver:
    """Determine a verified provenance for one identifier.

    Origins are tried in the configured order; the first that resolves wins.
    Failures never propagate: they are reported as the ``issue`` of the
    returned :class:`PackageProvenance`.
    """

    def __init__(
        self,
        *,
        vcs_systems: Sequence[VersionControlSystem] = (),
        downloader: Downloader | None = None,
        source_code_origins: Sequence[SourceCodeOrigin] = DEFAULT_SOURCE_CODE_ORIGINS,
        cache: ProvenanceCache | None = None,
    ) -> None:
        self._vcs_systems = tuple(vcs_systems)
        self._downloader = downloader
        self._origins = tuple(source_code_origins)
        self._cache = cache

    def resolve(
        self,
        identifier: Identifier,
        *,
        vcs: VcsInfo | None = None,
        source_artifact: RemoteArtifact | None = None,
    ) -> PackageProvenance:
        with WorkerPool(max_workers=1) as pool:
            return asyncio.run(
                self.resolve_async(identifier, vcs=vcs, source_artifact=source_artifact, pool=pool)
            )

    def resolve_package(self, package: Package | Project) -> PackageProvenance:
        return self.resolve(
            package.id, vcs=package.processed_vcs, source_artifact=_source_artifact_of(package)
        )

    async def resolve_async(
        self,
        identifier: Identifier,
        *,
        vcs: VcsInfo | None,
        source_artifact: RemoteArtifact | None,
        pool: WorkerPool,
    ) -> PackageProvenance:
        vcs = vcs.normalize() if vcs is not None else None
        request = request_fingerprint(vcs, source_artifact, self._origins)
        cached = self._cached(identifier, request)
        if cached is not None:
            log.debug("Reusing cached provenance of '%s'", identifier)
            return cached

        failures: list[str] = []
        for origin in self._origins:
            try:
                provenance = await self._resolve_origin(
                    origin, identifier, vcs, source_artifact, pool
                )
            except ResolutionFailure as exc:
                failures.append(f"{origin}: {exc}")
                continue
            except Exception as exc:  # noqa: BLE001
                log.warning("Unexpected failure resolving %s of '%s'", origin, identifier)
                failures.append(f"{origin}: {type(exc).__name__}: {exc}")
                continue

            result = PackageProvenance(id=identifier, provenance=provenance)
            self._remember(request, result)
            return result

        message = f"Could not resolve provenance of '{identifier}': " + "; ".join(failures)
        log.info("%s", message)
        return PackageProvenance(id=identifier, issue=Issue(message=message, source=ISSUE_SOURCE))

    async def _resolve_origin(
        self,
        origin: SourceCodeOrigin,
        identifier: Identifier,
        vcs: VcsInfo | None,
        source_artifact: RemoteArtifact | None,
        pool: WorkerPool,
    ) -> KnownProvenance:
        match origin:
            case SourceCodeOrigin.VCS:
                return await self._resolve_vcs(identifier, vcs, pool)
            case SourceCodeOrigin.ARTIFACT:
                return await self._resolve_artifact(source_artifact, pool)
            case _:
                assert_never(origin)

    async def _resolve_vcs(
        self, identifier: Identifier, vcs: VcsInfo | None, pool: WorkerPool
    ) -> RepositoryProvenance:
        if vcs is None or not vcs.url:
            raise ResolutionFailure("no VCS URL is known")

        system = system_for(self._vcs_systems, vcs.type)
        if system is None:
            raise ResolutionFailure(f"no VCS implementation for type '{vcs.type or 'unknown'}'")

        candidates = revision_candidates(identifier, vcs)
        if not candidates:
            raise ResolutionFailure(f"no revision candidates for '{vcs.url}'")

        errors: list[str] = []
        for candidate in candidates:
            try:
                resolved = (await pool.call(system.pin_revision, vcs, candidate)).strip()
            except (VcsError, OSError) as exc:
                errors.append(f"'{candidate}' ({exc})")
                continue
            if not resolved:
                errors.append(f"'{candidate}' (empty revision)")
                continue

            log.debug("Pinned '%s' of '%s' to '%s'", candidate, vcs.url, resolved)
            return RepositoryProvenance(
                vcs_type=vcs.type,
                url=vcs.url,
                requested_revision=candidate,
                resolved_revision=resolved,
                path=vcs.path,
            )

        raise ResolutionFailure(
            f"no revision of '{vcs.url}' could be resolved: tried {', '.join(errors)}"
        )

    async def _resolve_artifact(
        self, source_artifact: RemoteArtifact | None, pool: WorkerPool
    ) -> ArtifactProvenance:
        if source_artifact is None or source_artifact.is_empty:
            raise ResolutionFailure("no source artifact URL is known")
        if self._downloader is None:
            raise ResolutionFailure("no downloader is configured")

        try:
            path = await pool.call(self._downloader.fetch, source_artifact)
        except (DownloadError, OSError) as exc:
            raise ResolutionFailure(f"could not fetch '{source_artifact.url}': {exc}") from exc

        expected = source_artifact.hash
        if expected.is_verifiable and not await pool.call(expected.verify, path):
            raise ResolutionFailure(
                f"{expected.algorithm} of '{source_artifact.url}' does not match {expected.value}"
            )
        return ArtifactProvenance(source_artifact)

    def _cached(self, identifier: Identifier, request: str | None) -> PackageProvenance | None:
        if self._cache is None or request is None:
            return None
        try:
            return self._cache.get_package_provenance(identifier, request)
        except StorageError as exc:
            log.warning("Ignoring unreadable cached provenance of '%s': %s", identifier, exc)
            return None

    def _remember(self, request: str | None, result: PackageProvenance) -> None:
        if self._cache is None or request is None:
            return
        try:
            self._cache.put_package_provenance(request, result)
        except StorageError as exc:
            log.warning("Could not cache provenance of '%s': %s", result.id, exc)


def _source_artifact_of(package: Package | Project) -> RemoteArtifact | None:
    return package.source_artifact if isinstance(package, Package) else None
