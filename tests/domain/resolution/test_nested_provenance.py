from __future__ import annotations

from pathlib import Path

from provgraph.adapters.local_storage import LocalFileStorage
from provgraph.adapters.provenance_cache import ProvenanceResultCache
from provgraph.domain.model import RepositoryProvenance, VcsType
from provgraph.domain.ports import VcsError
from provgraph.domain.resolution import NestedProvenanceResolver, find_nested_candidates
from tests.helpers.provenance import (
    ROOT_URL,
    SHA_A,
    SHA_B,
    SHA_C,
    FakeVersionControlSystem,
    make_root,
)

FIRST_URL = "https://github.com/example/first"
SECOND_URL = "https://github.com/example/second"
THIRD_URL = "https://github.com/example/third"


def _nested(url: str, revision: str) -> RepositoryProvenance:
    return RepositoryProvenance(
        vcs_type=VcsType.GIT, url=url, requested_revision=revision, resolved_revision=revision
    )


def _three_subrepos_with_failing_second(vcs: FakeVersionControlSystem, target: Path) -> None:
    vcs.register(target / "first", FIRST_URL, SHA_A)
    vcs.register(target / "second", SECOND_URL, SHA_B, error=VcsError("corrupt repository"))
    vcs.register(target / "third", THIRD_URL, SHA_C)


def _chain(vcs: FakeVersionControlSystem, target: Path) -> None:
    vcs.register(target / "l1", FIRST_URL, SHA_A)
    vcs.register(target / "l1" / "l2", SECOND_URL, SHA_B)
    vcs.register(target / "l1" / "l2" / "l3", THIRD_URL, SHA_C)


def test_find_nested_candidates_stops_at_outermost_repositories(tmp_path: Path) -> None:
    for directory in ("a/.git", "a/inner/.git", "b/c/.hg", ".git/modules/x/.git"):
        (tmp_path / directory).mkdir(parents=True)
    (tmp_path / "d").mkdir()
    (tmp_path / "d" / ".git").write_text("gitdir: ../.git/modules/d\n")

    candidates = find_nested_candidates(tmp_path)

    assert candidates == [tmp_path / "a", tmp_path / "b" / "c", tmp_path / "d"]


def test_partial_failure_keeps_resolved_siblings_and_reports_the_failed_one() -> None:
    vcs = FakeVersionControlSystem(layout=_three_subrepos_with_failing_second)
    resolver = NestedProvenanceResolver(vcs_systems=[vcs])

    result = resolver.resolve(make_root())

    assert result.root == make_root()
    assert result.nested_provenance == {
        "first": _nested(FIRST_URL, SHA_A),
        "third": _nested(THIRD_URL, SHA_C),
    }
    assert result.issue is not None
    assert "'second'" in result.issue.message
    assert "corrupt repository" in result.issue.message
    assert "'first'" not in result.issue.message
    assert not result.is_complete


def test_all_nested_repositories_resolved_is_complete() -> None:
    def layout(vcs: FakeVersionControlSystem, target: Path) -> None:
        vcs.register(target / "libs" / "first", "git@github.com:example/first.git", SHA_A)

    resolver = NestedProvenanceResolver(vcs_systems=[FakeVersionControlSystem(layout=layout)])

    result = resolver.resolve(make_root())

    assert result.is_complete
    assert result.nested_provenance == {"libs/first": _nested(FIRST_URL, SHA_A)}


def test_nested_repositories_of_nested_repositories_are_found() -> None:
    resolver = NestedProvenanceResolver(vcs_systems=[FakeVersionControlSystem(layout=_chain)])

    result = resolver.resolve(make_root())

    assert result.is_complete
    assert list(result.nested_provenance) == ["l1", "l1/l2", "l1/l2/l3"]


def test_depth_bound_stops_descending_and_reports_it() -> None:
    resolver = NestedProvenanceResolver(
        vcs_systems=[FakeVersionControlSystem(layout=_chain)], max_depth=2
    )

    result = resolver.resolve(make_root())

    assert list(result.nested_provenance) == ["l1", "l1/l2"]
    assert result.issue is not None
    assert "maximum nesting depth of 2 reached" in result.issue.message
    assert "'l1/l2'" in result.issue.message


def test_repository_embedding_an_ancestor_is_skipped() -> None:
    def layout(vcs: FakeVersionControlSystem, target: Path) -> None:
        vcs.register(target / "vendor" / "self", "git@github.com:example/root.git", SHA_B)
        vcs.register(target / "lib", FIRST_URL, SHA_A)
        vcs.register(target / "lib" / "again", f"{FIRST_URL}.git", SHA_C)

    resolver = NestedProvenanceResolver(vcs_systems=[FakeVersionControlSystem(layout=layout)])

    result = resolver.resolve(make_root())

    assert result.nested_provenance == {"lib": _nested(FIRST_URL, SHA_A)}
    assert result.issue is not None
    assert f"re-introduces the enclosing repository '{ROOT_URL}'" in result.issue.message
    assert f"re-introduces the enclosing repository '{FIRST_URL}'" in result.issue.message


def test_metadata_without_working_tree_root_is_ignored() -> None:
    def layout(vcs: FakeVersionControlSystem, target: Path) -> None:  # noqa: ARG001
        (target / "plain" / ".git").mkdir(parents=True)

    resolver = NestedProvenanceResolver(vcs_systems=[FakeVersionControlSystem(layout=layout)])

    result = resolver.resolve(make_root())

    assert result.is_complete
    assert result.nested_provenance == {}


def test_checkout_failure_is_reported_as_issue() -> None:
    vcs = FakeVersionControlSystem(checkout_error=VcsError("network unreachable"))
    resolver = NestedProvenanceResolver(vcs_systems=[vcs])

    result = resolver.resolve(make_root())

    assert result.nested_provenance == {}
    assert result.issue is not None
    assert result.issue.message.startswith(f"Could not check out '{ROOT_URL}'")
    assert "network unreachable" in result.issue.message


def test_missing_vcs_implementation_is_reported_as_issue() -> None:
    resolver = NestedProvenanceResolver(
        vcs_systems=[FakeVersionControlSystem(vcs_type=VcsType.SUBVERSION)]
    )

    result = resolver.resolve(make_root())

    assert result.issue is not None
    assert "No VCS implementation for type 'Git'" in result.issue.message


def test_sub_path_of_root_is_ignored() -> None:
    vcs = FakeVersionControlSystem()
    root = RepositoryProvenance(
        vcs_type=VcsType.GIT,
        url=ROOT_URL,
        requested_revision=SHA_A,
        resolved_revision=SHA_A,
        path="sub/dir",
    )

    result = NestedProvenanceResolver(vcs_systems=[vcs]).resolve(root)

    assert result.root == make_root()
    assert vcs.checkouts == [make_root()]


def test_complete_results_are_cached(tmp_path: Path) -> None:
    cache = ProvenanceResultCache(LocalFileStorage(tmp_path / "cache"))
    vcs = FakeVersionControlSystem(layout=_chain)
    resolver = NestedProvenanceResolver(vcs_systems=[vcs], cache=cache)

    first = resolver.resolve(make_root())
    second = resolver.resolve(make_root())

    assert first == second
    assert len(vcs.checkouts) == 1


def test_partial_results_are_not_cached(tmp_path: Path) -> None:
    cache = ProvenanceResultCache(LocalFileStorage(tmp_path / "cache"))
    vcs = FakeVersionControlSystem(layout=_three_subrepos_with_failing_second)
    resolver = NestedProvenanceResolver(vcs_systems=[vcs], cache=cache)

    resolver.resolve(make_root())
    resolver.resolve(make_root())

    assert len(vcs.checkouts) == 2


def test_checkouts_go_below_the_work_dir(tmp_path: Path) -> None:
    seen: list[Path] = []

    def layout(vcs: FakeVersionControlSystem, target: Path) -> None:  # noqa: ARG001
        seen.append(target)

    resolver = NestedProvenanceResolver(
        vcs_systems=[FakeVersionControlSystem(layout=layout)], work_dir=tmp_path
    )

    resolver.resolve(make_root())

    (target,) = seen
    assert target.parent == tmp_path
    assert not target.exists()
