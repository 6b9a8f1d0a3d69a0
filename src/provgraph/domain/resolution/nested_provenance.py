"""Discover repositories nested in the working tree of another repository."""

from __future__ import annotations

import asyncio
import os
import tempfile
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from provgraph.config.resolver import DEFAULT_MAX_NESTED_DEPTH
from provgraph.domain.model import (
    Issue,
    NestedProvenance,
    RepositoryProvenance,
    normalize_vcs_url,
)
from provgraph.domain.ports import StorageError, system_for, working_tree_for
from provgraph.domain.resolution.workers import WorkerPool

if TYPE_CHECKING:
    from collections.abc import Sequence

    from provgraph.domain.ports import ProvenanceCache, VersionControlSystem

log = getLogger(__name__)

ISSUE_SOURCE: Final[str] = "NestedProvenanceResolver"
VCS_METADATA_NAMES: Final[frozenset[str]] = frozenset({".git", ".hg", ".svn", ".repo"})


def find_nested_candidates(directory: Path) -> list[Path]:
    """Return the outermost directories below ``directory`` that carry VCS metadata.

    Symbolic links are not followed and the search does not descend into a
    candidate, since anything below it belongs to that candidate.
    """

    candidates: list[Path] = []
    for current, dirnames, filenames in os.walk(directory, followlinks=False):
        entries = set(dirnames) | set(filenames)
        current_path = Path(current)
        if current_path != directory and entries & VCS_METADATA_NAMES:
            candidates.append(current_path)
            dirnames.clear()
            continue
        dirnames[:] = sorted(name for name in dirnames if name not in VCS_METADATA_NAMES)
    return sorted(candidates)


@dataclass(slots=True)
class _Discovery:
    """Mutable state of one ``resolve`` call; never shared between calls."""

    checkout_root: Path
    found: dict[str, RepositoryProvenance] = field(default_factory=dict)
    problems: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _Resolved:
    directory: Path
    path: str
    provenance: RepositoryProvenance


class NestedProvenanceResolver:
    """Resolve a :class:`NestedProvenance` for a root repository.

    Siblings on one level resolve concurrently; the children of a nested
    repository are only looked for after its own provenance is known. A
    failing nested repository never aborts the call: whatever could be
    resolved is returned together with an issue describing what could not.
    """

    def __init__(
        self,
        *,
        vcs_systems: Sequence[VersionControlSystem],
        max_depth: int = DEFAULT_MAX_NESTED_DEPTH,
        cache: ProvenanceCache | None = None,
        work_dir: Path | None = None,
    ) -> None:
        self._vcs_systems = tuple(vcs_systems)
        self._max_depth = max_depth
        self._cache = cache
        self._work_dir = work_dir

    def resolve(self, root: RepositoryProvenance, *, max_workers: int = 4) -> NestedProvenance:
        with WorkerPool(max_workers=max_workers) as pool:
            return asyncio.run(self.resolve_async(root, pool=pool))

    async def resolve_async(
        self, root: RepositoryProvenance, *, pool: WorkerPool
    ) -> NestedProvenance:
        root = root.root()
        cached = self._cached(root)
        if cached is not None:
            log.debug("Reusing cached nested provenance of '%s'", root.url)
            return cached

        system = system_for(self._vcs_systems, root.vcs_type)
        if system is None:
            return self._failed(root, f"No VCS implementation for type '{root.vcs_type}'")

        with tempfile.TemporaryDirectory(
            prefix="provgraph-nested-", dir=self._work_dir, ignore_cleanup_errors=True
        ) as tmp:
            try:
                tree = await pool.call(system.checkout, root, Path(tmp))
            except Exception as exc:  # noqa: BLE001
                return self._failed(
                    root, f"Could not check out '{root.url}' at '{root.resolved_revision}': {exc}"
                )

            checkout_root = Path(tree.root).resolve()
            discovery = _Discovery(checkout_root=checkout_root)
            await self._discover(
                checkout_root,
                depth=1,
                ancestors=(normalize_vcs_url(root.url),),
                discovery=discovery,
                pool=pool,
            )

        issue = None
        if discovery.problems:
            issue = Issue(
                message=f"Nested repositories of '{root.url}' are incomplete: "
                + "; ".join(discovery.problems),
                source=ISSUE_SOURCE,
            )
            log.warning("%s", issue.message)

        result = NestedProvenance(root=root, nested_provenance=discovery.found, issue=issue)
        if issue is None:
            self._remember(result)
        return result

    async def _discover(
        self,
        directory: Path,
        *,
        depth: int,
        ancestors: tuple[str, ...],
        discovery: _Discovery,
        pool: WorkerPool,
    ) -> None:
        candidates = await pool.call(find_nested_candidates, directory)
        if not candidates:
            return

        if depth > self._max_depth:
            below = directory.relative_to(discovery.checkout_root).as_posix()
            discovery.problems.append(
                f"not descending into {len(candidates)} repositories below "
                f"'{below}': maximum nesting depth of {self._max_depth} reached"
            )
            return

        resolved = await asyncio.gather(
            *(
                self._resolve_nested(candidate, ancestors=ancestors, discovery=discovery, pool=pool)
                for candidate in candidates
            )
        )

        children = [entry for entry in resolved if entry is not None]
        for entry in children:
            discovery.found[entry.path] = entry.provenance

        await asyncio.gather(
            *(
                self._discover(
                    entry.directory,
                    depth=depth + 1,
                    ancestors=(*ancestors, entry.provenance.url),
                    discovery=discovery,
                    pool=pool,
                )
                for entry in children
            )
        )

    async def _resolve_nested(
        self,
        directory: Path,
        *,
        ancestors: tuple[str, ...],
        discovery: _Discovery,
        pool: WorkerPool,
    ) -> _Resolved | None:
        path = directory.relative_to(discovery.checkout_root).as_posix()
        try:
            tree = await pool.call(working_tree_for, self._vcs_systems, directory)
            if tree is None or Path(tree.root).resolve() != directory.resolve():
                log.debug("Ignoring '%s', it is not the root of a known working tree", path)
                return None
            url = normalize_vcs_url(await pool.call(tree.get_remote_url))
            revision = (await pool.call(tree.get_revision)).strip()
        except Exception as exc:  # noqa: BLE001
            log.warning("Could not resolve nested repository at '%s': %s", path, exc)
            discovery.problems.append(f"could not resolve '{path}': {exc}")
            return None

        if not url or not revision:
            discovery.problems.append(f"'{path}' has no remote URL or revision")
            return None
        if url in ancestors:
            discovery.problems.append(
                f"'{path}' re-introduces the enclosing repository '{url}' and was skipped"
            )
            return None

        provenance = RepositoryProvenance(
            vcs_type=tree.vcs_type,
            url=url,
            requested_revision=revision,
            resolved_revision=revision,
        )
        return _Resolved(directory=directory, path=path, provenance=provenance)

    def _failed(self, root: RepositoryProvenance, message: str) -> NestedProvenance:
        log.warning("%s", message)
        return NestedProvenance(root=root, issue=Issue(message=message, source=ISSUE_SOURCE))

    def _cached(self, root: RepositoryProvenance) -> NestedProvenance | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get_nested_provenance(root)
        except StorageError as exc:
            log.warning("Ignoring unreadable cached nested provenance of '%s': %s", root.url, exc)
            return None

    def _remember(self, result: NestedProvenance) -> None:
        if self._cache is None:
            return
        try:
            self._cache.put_nested_provenance(result)
        except StorageError as exc:
            log.warning("Could not cache nested provenance of '%s': %s", result.root.url, exc)
