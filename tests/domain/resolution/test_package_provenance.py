from __future__ import annotations

import hashlib
from pathlib import Path  # noqa: TC003

from provgraph.adapters.local_storage import LocalFileStorage
from provgraph.adapters.provenance_cache import ProvenanceResultCache
from provgraph.domain.model import (
    ArtifactProvenance,
    Hash,
    Package,
    RemoteArtifact,
    RepositoryProvenance,
    SourceCodeOrigin,
    VcsInfo,
    VcsType,
)
from provgraph.domain.resolution import (
    PackageProvenanceResolver,
    is_fixed_revision,
    request_fingerprint,
    revision_candidates,
)
from tests.helpers.provenance import (
    ROOT_URL,
    SHA_A,
    SHA_B,
    FakeDownloader,
    FakeVersionControlSystem,
    git_vcs,
    make_identifier,
)

ARTIFACT_URL = "https://example.com/lib-1.0.0.tar.gz"
CONTENT = b"source archive"


def _artifact(digest: str | None = None) -> RemoteArtifact:
    value = hashlib.sha256(CONTENT).hexdigest() if digest is None else digest
    return RemoteArtifact(url=ARTIFACT_URL, hash=Hash.create(value))


def test_revision_candidates_prefer_declared_revision() -> None:
    candidates = revision_candidates(make_identifier(), git_vcs(revision="main"))

    assert candidates == ("main", "1.0.0", "v1.0.0", "lib-1.0.0")


def test_revision_candidates_without_version_or_revision() -> None:
    assert revision_candidates(make_identifier(version=""), git_vcs()) == ()


def test_is_fixed_revision() -> None:
    assert is_fixed_revision(SHA_A)
    assert is_fixed_revision("F" * 64)
    assert not is_fixed_revision("v1.0")
    assert not is_fixed_revision("a" * 39)


def test_request_fingerprint_only_for_pinned_inputs() -> None:
    origins = (SourceCodeOrigin.VCS,)

    assert request_fingerprint(git_vcs(revision="main"), None, origins) is None
    pinned = request_fingerprint(git_vcs(revision=SHA_A), None, origins)
    assert pinned is not None
    assert pinned != request_fingerprint(git_vcs(revision=SHA_B), None, origins)
    assert request_fingerprint(None, _artifact(), (SourceCodeOrigin.ARTIFACT,)) is not None


def test_resolves_declared_revision() -> None:
    vcs = FakeVersionControlSystem(refs={(ROOT_URL, "main"): SHA_A})
    resolver = PackageProvenanceResolver(vcs_systems=[vcs])
    vcs_info = VcsInfo(type=VcsType.GIT, url=f"{ROOT_URL}.git", revision="main", path="/sub/")

    result = resolver.resolve(make_identifier(), vcs=vcs_info)

    assert result.issue is None
    assert result.provenance == RepositoryProvenance(
        vcs_type=VcsType.GIT,
        url=ROOT_URL,
        requested_revision="main",
        resolved_revision=SHA_A,
        path="sub",
    )


def test_falls_back_to_tags_derived_from_the_version() -> None:
    vcs = FakeVersionControlSystem(refs={(ROOT_URL, "v1.0.0"): SHA_B})
    resolver = PackageProvenanceResolver(vcs_systems=[vcs])

    result = resolver.resolve(make_identifier(), vcs=git_vcs(revision="release"))

    assert isinstance(result.provenance, RepositoryProvenance)
    assert result.provenance.requested_revision == "v1.0.0"
    assert vcs.pin_calls == [(ROOT_URL, "release"), (ROOT_URL, "1.0.0"), (ROOT_URL, "v1.0.0")]


def test_falls_back_to_source_artifact(tmp_path: Path) -> None:
    downloader = FakeDownloader(tmp_path, {ARTIFACT_URL: CONTENT})
    resolver = PackageProvenanceResolver(
        vcs_systems=[FakeVersionControlSystem()], downloader=downloader
    )
    package = Package(id=make_identifier(), vcs=git_vcs(), source_artifact=_artifact())

    result = resolver.resolve_package(package)

    assert result.provenance == ArtifactProvenance(_artifact())
    assert downloader.fetched == [ARTIFACT_URL]


def test_artifact_with_mismatching_hash_is_an_issue(tmp_path: Path) -> None:
    resolver = PackageProvenanceResolver(
        downloader=FakeDownloader(tmp_path, {ARTIFACT_URL: CONTENT}),
        source_code_origins=(SourceCodeOrigin.ARTIFACT,),
    )

    result = resolver.resolve(make_identifier(), source_artifact=_artifact("0" * 64))

    assert result.issue is not None
    assert "does not match" in result.issue.message


def test_origin_order_is_respected(tmp_path: Path) -> None:
    vcs = FakeVersionControlSystem(refs={(ROOT_URL, "main"): SHA_A})
    resolver = PackageProvenanceResolver(
        vcs_systems=[vcs],
        downloader=FakeDownloader(tmp_path, {ARTIFACT_URL: CONTENT}),
        source_code_origins=(SourceCodeOrigin.ARTIFACT, SourceCodeOrigin.VCS),
    )

    result = resolver.resolve(
        make_identifier(), vcs=git_vcs(revision="main"), source_artifact=_artifact()
    )

    assert isinstance(result.provenance, ArtifactProvenance)
    assert vcs.pin_calls == []


def test_unresolvable_identifier_yields_issue_naming_every_origin() -> None:
    resolver = PackageProvenanceResolver(vcs_systems=[FakeVersionControlSystem()])

    result = resolver.resolve(make_identifier(), vcs=git_vcs(revision="main"))

    assert result.provenance is None
    assert result.issue is not None
    assert result.issue.message.startswith("Could not resolve provenance of 'PyPI::lib:1.0.0'")
    assert "VCS: no revision of" in result.issue.message
    assert "ARTIFACT: no source artifact URL is known" in result.issue.message
    assert result.issue.source == "ProvenanceResolver"


def test_missing_vcs_implementation_is_an_issue() -> None:
    resolver = PackageProvenanceResolver(
        vcs_systems=[FakeVersionControlSystem(vcs_type=VcsType.MERCURIAL)],
        source_code_origins=(SourceCodeOrigin.VCS,),
    )

    result = resolver.resolve(make_identifier(), vcs=git_vcs(revision="main"))

    assert result.issue is not None
    assert "no VCS implementation for type 'Git'" in result.issue.message


class _ExplodingVersionControlSystem(FakeVersionControlSystem):
    def pin_revision(self, vcs: VcsInfo, revision: str) -> str:
        raise RuntimeError("boom")


def test_unexpected_failures_do_not_propagate() -> None:
    vcs = _ExplodingVersionControlSystem()
    resolver = PackageProvenanceResolver(
        vcs_systems=[vcs], source_code_origins=(SourceCodeOrigin.VCS,)
    )

    result = resolver.resolve(make_identifier(), vcs=git_vcs(revision="main"))

    assert result.issue is not None
    assert "RuntimeError: boom" in result.issue.message


def test_pinned_results_are_cached(tmp_path: Path) -> None:
    cache = ProvenanceResultCache(LocalFileStorage(tmp_path / "cache"))
    vcs = FakeVersionControlSystem(refs={(ROOT_URL, SHA_A): SHA_A})
    resolver = PackageProvenanceResolver(vcs_systems=[vcs], cache=cache)

    first = resolver.resolve(make_identifier(), vcs=git_vcs(revision=SHA_A))
    second = resolver.resolve(make_identifier(), vcs=git_vcs(revision=SHA_A))

    assert first == second
    assert len(vcs.pin_calls) == 1


def test_symbolic_revisions_are_not_cached(tmp_path: Path) -> None:
    cache = ProvenanceResultCache(LocalFileStorage(tmp_path / "cache"))
    vcs = FakeVersionControlSystem(refs={(ROOT_URL, "main"): SHA_A})
    resolver = PackageProvenanceResolver(vcs_systems=[vcs], cache=cache)

    resolver.resolve(make_identifier(), vcs=git_vcs(revision="main"))
    resolver.resolve(make_identifier(), vcs=git_vcs(revision="main"))

    assert len(vcs.pin_calls) == 2
