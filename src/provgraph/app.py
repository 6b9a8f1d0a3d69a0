"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import ExitStack
from logging import getLogger
from typing import TYPE_CHECKING

from provgraph.adapters.git import GitCommandLine
from provgraph.adapters.http_download import HttpDownloader
from provgraph.adapters.local_storage import CompressedFileStorage, LocalFileStorage
from provgraph.adapters.provenance_cache import ProvenanceResultCache
from provgraph.adapters.serialization import read_definition_file, write_result
from provgraph.config import (
    DownloadConfig,
    ResolverConfig,
    StorageConfig,
    get_download_config,
    get_resolver_config,
    get_storage_config,
)
from provgraph.domain.assembly import assemble_result, is_marked_excluded
from provgraph.domain.ports import CollectingIssueSink
from provgraph.domain.resolution import (
    NestedProvenanceResolver,
    PackageProvenanceResolver,
    ProvenanceResolutionRunner,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from provgraph.domain.assembly import ExcludePredicate
    from provgraph.domain.model import PipelineResult
    from provgraph.domain.ports import (
        Downloader,
        FileStorage,
        IssueSink,
        ProvenanceCache,
        VersionControlSystem,
    )


log = getLogger(__name__)


def build_vcs_systems(*, timeout: float | None = None) -> tuple[VersionControlSystem, ...]:
    """VCS implementations whose commands give up after ``timeout`` seconds."""
    return (GitCommandLine(timeout=timeout),)


def _file_storage(storage_config: StorageConfig, directory: Path) -> FileStorage:
    storage_type = CompressedFileStorage if storage_config.compress else LocalFileStorage
    return storage_type(directory)


def build_artifact_store(storage_config: StorageConfig) -> FileStorage:
    """The store later pipeline stages keep their artifacts in."""
    return _file_storage(storage_config, storage_config.artifacts_dir())


def build_provenance_cache(storage_config: StorageConfig) -> ProvenanceCache:
    return ProvenanceResultCache(_file_storage(storage_config, storage_config.results_dir()))


def create_flat_result(
    definition_path: Path,
    *,
    exclude_predicate: ExcludePredicate = is_marked_excluded,
) -> PipelineResult:
    """Read a definition file and assemble the analyzer result it describes."""

    definition = read_definition_file(definition_path)
    return assemble_result(definition, exclude_predicate)


def resolve_provenance(
    result: PipelineResult,
    *,
    resolver_config: ResolverConfig | None = None,
    storage_config: StorageConfig | None = None,
    download_config: DownloadConfig | None = None,
    vcs_systems: Sequence[VersionControlSystem] | None = None,
    downloader: Downloader | None = None,
    cache: ProvenanceCache | None = None,
    issue_sink: IssueSink | None = None,
) -> PipelineResult:
    """Resolve the provenance of every project and package of ``result``.

    Adapters that are not passed in are built from the environment
    configuration.
    """

    effective_resolver = resolver_config or get_resolver_config()
    effective_storage = storage_config or get_storage_config()
    effective_vcs = (
        tuple(vcs_systems)
        if vcs_systems is not None
        else build_vcs_systems(timeout=effective_resolver.timeout_seconds)
    )
    effective_cache = cache or build_provenance_cache(effective_storage)
    effective_sink = issue_sink or CollectingIssueSink()

    with ExitStack() as stack:
        effective_downloader = downloader
        if effective_downloader is None:
            effective_downloader = stack.enter_context(
                HttpDownloader(
                    effective_storage.downloads_dir(),
                    config=download_config or get_download_config(),
                )
            )

        runner = ProvenanceResolutionRunner(
            package_resolver=PackageProvenanceResolver(
                vcs_systems=effective_vcs,
                downloader=effective_downloader,
                source_code_origins=effective_resolver.source_code_origins,
                cache=effective_cache,
            ),
            nested_resolver=NestedProvenanceResolver(
                vcs_systems=effective_vcs,
                max_depth=effective_resolver.max_nested_depth,
                cache=effective_cache,
            ),
            config=effective_resolver,
            issue_sink=effective_sink,
        )
        provenance = runner.run(result.analyzer)

    return result.with_provenance(provenance)


def run_pipeline(
    definition_path: Path,
    output_path: Path,
    *,
    resolve: bool = True,
    resolver_config: ResolverConfig | None = None,
) -> PipelineResult:
    """Turn a definition file into a result document at ``output_path``."""

    log.info("Starting pipeline for '%s'", definition_path)
    result = create_flat_result(definition_path)
    if resolve:
        result = resolve_provenance(result, resolver_config=resolver_config)
    write_result(result, output_path)

    issues = result.provenance.issues() if result.provenance is not None else {}
    log.info(
        f"Finished pipeline: projects={len(result.analyzer.projects)}, "
        f"packages={len(result.analyzer.packages)}, identifiers_with_issues={len(issues)}"
    )
    return result
