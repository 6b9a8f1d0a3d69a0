from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003

from provgraph.adapters.git import GitCommandLine
from provgraph.adapters.local_storage import CompressedFileStorage, LocalFileStorage
from provgraph.adapters.provenance_cache import ProvenanceResultCache
from provgraph.adapters.serialization import read_result
from provgraph.app import (
    build_artifact_store,
    build_vcs_systems,
    create_flat_result,
    resolve_provenance,
    run_pipeline,
)
from provgraph.config import ResolverConfig, StorageConfig
from provgraph.domain.model import Identifier, RepositoryProvenance
from provgraph.domain.ports import CollectingIssueSink
from tests.helpers.provenance import (
    ROOT_URL,
    SHA_A,
    SHA_B,
    FakeDownloader,
    FakeVersionControlSystem,
)

LIB = Identifier.parse("PyPI::lib:1.0.0")
MISSING = Identifier.parse("PyPI::missing:0.1")


def _write_definition(tmp_path: Path) -> Path:
    path = tmp_path / "deps.json"
    path.write_text(
        json.dumps(
            {
                "name": "demo",
                "vcsType": "Git",
                "vcsUrl": f"{ROOT_URL}.git",
                "vcsRevision": "main",
                "dependencies": [
                    {
                        "id": str(LIB),
                        "vcsType": "Git",
                        "vcsUrl": "https://github.com/example/lib",
                        "vcsRevision": "v1.0.0",
                        "dependencies": [str(MISSING)],
                    },
                    {"id": str(MISSING), "isExcluded": True},
                ],
            }
        )
    )
    return path


def test_create_flat_result(tmp_path: Path) -> None:
    result = create_flat_result(_write_definition(tmp_path))

    (project,) = result.analyzer.projects
    assert project.id == Identifier.for_unmanaged("demo")
    assert {package.id for package in result.analyzer.packages} == {LIB, MISSING}
    assert result.provenance is None


def test_resolve_provenance_with_injected_adapters(tmp_path: Path) -> None:
    vcs = FakeVersionControlSystem(
        refs={(ROOT_URL, "main"): SHA_A, ("https://github.com/example/lib", "v1.0.0"): SHA_B}
    )
    sink = CollectingIssueSink()
    result = create_flat_result(_write_definition(tmp_path))

    resolved = resolve_provenance(
        result,
        resolver_config=ResolverConfig(max_workers=2),
        storage_config=StorageConfig(data_dir=tmp_path / "data"),
        vcs_systems=[vcs],
        downloader=FakeDownloader(tmp_path),
        cache=ProvenanceResultCache(LocalFileStorage(tmp_path / "cache")),
        issue_sink=sink,
    )

    assert resolved.provenance is not None
    lib = resolved.provenance.provenance_for(LIB)
    assert lib is not None
    assert isinstance(lib.provenance, RepositoryProvenance)
    assert lib.provenance.resolved_revision == SHA_B
    assert {
        (root.url, root.resolved_revision) for root in resolved.provenance.nested_provenances
    } == {(ROOT_URL, SHA_A), ("https://github.com/example/lib", SHA_B)}
    assert set(sink.issues()) == {MISSING}


def test_run_pipeline_without_resolution_writes_the_result(tmp_path: Path) -> None:
    output = tmp_path / "out" / "result.json"

    result = run_pipeline(_write_definition(tmp_path), output, resolve=False)

    assert read_result(output) == result
    assert result.provenance is None


def test_vcs_commands_use_the_resolution_timeout() -> None:
    (git,) = build_vcs_systems(timeout=2.5)

    assert isinstance(git, GitCommandLine)
    assert git.timeout == 2.5


def test_artifact_store_lives_below_the_data_dir(tmp_path: Path) -> None:
    plain = build_artifact_store(StorageConfig(data_dir=tmp_path / "data"))
    compressed = build_artifact_store(StorageConfig(data_dir=tmp_path / "data", compress=True))

    assert isinstance(plain, LocalFileStorage)
    assert not isinstance(plain, CompressedFileStorage)
    assert plain.directory == (tmp_path / "data").resolve() / "artifacts"
    assert isinstance(compressed, CompressedFileStorage)
    assert compressed.directory == plain.directory
