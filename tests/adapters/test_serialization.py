from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003

import pytest

from provgraph.adapters.serialization import (
    dump_nested_provenance,
    dump_package_provenance,
    dump_result,
    load_definition,
    load_nested_provenance,
    load_package_provenance,
    load_result,
    read_definition_file,
    read_result,
    write_result,
)
from provgraph.domain.assembly import assemble_result
from provgraph.domain.model import (
    ArtifactProvenance,
    Hash,
    Identifier,
    Issue,
    NestedProvenance,
    PackageProvenance,
    PipelineResult,
    ProvenanceResolutionResult,
    RemoteArtifact,
    RepositoryProvenance,
    Severity,
    ValidationError,
    VcsType,
)

DEFINITION = {
    "name": "demo",
    "vcsType": "git",
    "vcsUrl": "git@github.com:example/demo.git",
    "vcsRevision": "main",
    "dependencies": [
        {
            "id": "PyPI::requests:2.32.0",
            "vcsType": "Git",
            "vcsUrl": "https://github.com/psf/requests.git",
            "vcsRevision": "v2.32.0",
            "dependencies": ["PyPI::urllib3:2.2.0"],
        },
        {
            "id": "PyPI::urllib3:2.2.0",
            "sourceArtifactUrl": "https://files.example.com/urllib3-2.2.0.tar.gz",
            "sourceArtifactHash": "a" * 64,
            "isDynamicallyLinked": True,
        },
        {"id": "PyPI::pytest:8.0.0", "isExcluded": True},
    ],
}

REQUESTS = Identifier.parse("PyPI::requests:2.32.0")
URLLIB3 = Identifier.parse("PyPI::urllib3:2.2.0")
PYTEST = Identifier.parse("PyPI::pytest:8.0.0")
TIMESTAMP = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _result() -> PipelineResult:
    result = assemble_result(load_definition(json.dumps(DEFINITION)))
    root = RepositoryProvenance(
        vcs_type=VcsType.GIT,
        url="https://github.com/psf/requests",
        requested_revision="v2.32.0",
        resolved_revision="b" * 40,
    )
    artifact = RemoteArtifact(
        url="https://files.example.com/urllib3-2.2.0.tar.gz", hash=Hash.create("a" * 64)
    )
    issue = Issue(message="no source", source="ProvenanceResolver", timestamp=TIMESTAMP)
    return result.with_provenance(
        ProvenanceResolutionResult.of(
            [
                PackageProvenance(id=REQUESTS, provenance=root),
                PackageProvenance(id=URLLIB3, provenance=ArtifactProvenance(artifact)),
                PackageProvenance(id=PYTEST, issue=issue),
            ],
            [
                NestedProvenance(
                    root=root,
                    nested_provenance={
                        "vendor/certifi": RepositoryProvenance(
                            vcs_type=VcsType.GIT,
                            url="https://github.com/certifi/python-certifi",
                            requested_revision="c" * 40,
                            resolved_revision="c" * 40,
                        )
                    },
                )
            ],
        )
    )


def test_result_survives_a_round_trip() -> None:
    result = _result()

    assert load_result(dump_result(result)) == result


def test_result_file_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "out" / "result.json"

    write_result(_result(), path)

    assert read_result(path) == _result()


def test_documents_use_camel_case_and_omit_empty_fields() -> None:
    document = json.loads(dump_result(_result()))

    packages = {package["id"]: package for package in document["analyzer"]["packages"]}
    assert set(packages[str(PYTEST)]) == {"id"}
    assert set(packages[str(URLLIB3)]) == {"id", "sourceArtifact"}
    assert packages[str(REQUESTS)]["vcs"]["url"] == "https://github.com/psf/requests.git"
    assert "vcsProcessed" not in packages[str(REQUESTS)]
    assert "vcsProcessed" not in document["analyzer"]["projects"][0]
    assert document["repository"]["config"]["scopeExcludes"][0] == {
        "pattern": "excluded",
        "reason": "DEV_DEPENDENCY_OF",
    }

    provenances = {item["id"]: item for item in document["provenance"]["packageProvenances"]}
    assert provenances[str(REQUESTS)]["repository"]["resolvedRevision"] == "b" * 40
    assert "issue" not in provenances[str(REQUESTS)]
    assert provenances[str(PYTEST)]["issue"]["timestamp"].startswith("2024-05-01T12:00:00")
    assert "severity" not in provenances[str(PYTEST)]["issue"]
    (nested,) = document["provenance"]["nestedProvenances"]
    assert list(nested["nestedProvenance"]) == ["vendor/certifi"]


def test_empty_result_is_an_empty_document() -> None:
    assert json.loads(dump_result(PipelineResult())) == {}
    assert load_result("{}") == PipelineResult()


def test_result_without_provenance_has_no_provenance_section() -> None:
    result = assemble_result(load_definition(json.dumps(DEFINITION)))

    document = json.loads(dump_result(result))

    assert "provenance" not in document
    assert load_result(dump_result(result)).provenance is None


@pytest.mark.parametrize(
    ("data", "problem"),
    [
        ("not json", "<root>"),
        ('{"analyzer": {"packages": [{"vcs": {}}]}}', "analyzer.packages.0.id"),
        ('{"analyzer": {"packages": [{"id": "only:three:parts"}]}}', "four"),
    ],
    ids=["syntax", "missing-id", "bad-identifier"],
)
def test_malformed_documents_raise_validation_error(data: str, problem: str) -> None:
    with pytest.raises(ValidationError) as exc:
        load_result(data)

    assert any(problem in item for item in exc.value.problems)


def test_package_provenance_naming_repository_and_artifact_is_rejected() -> None:
    data = json.dumps(
        {
            "id": "PyPI::a:1",
            "repository": {"url": "https://github.com/example/a", "resolvedRevision": "a" * 40},
            "sourceArtifact": {"url": "https://example.com/a.tar.gz"},
        }
    )

    with pytest.raises(ValidationError, match="both a repository and a source artifact"):
        load_package_provenance(data)


def test_cache_documents_are_compact() -> None:
    result = PackageProvenance(
        id=REQUESTS,
        issue=Issue(message="x", source="y", severity=Severity.WARNING, timestamp=TIMESTAMP),
    )
    nested = NestedProvenance(
        root=RepositoryProvenance(
            vcs_type=VcsType.GIT,
            url="https://github.com/example/a",
            requested_revision="a" * 40,
            resolved_revision="a" * 40,
        )
    )

    assert b"\n" not in dump_package_provenance(result)
    assert load_package_provenance(dump_package_provenance(result)) == result
    assert load_nested_provenance(dump_nested_provenance(nested)) == nested


def test_definition_file_is_parsed(tmp_path: Path) -> None:
    path = tmp_path / "deps.json"
    path.write_text(json.dumps(DEFINITION))

    definition = read_definition_file(path)

    assert definition.name == "demo"
    assert definition.definition_file_path == path.as_posix()
    assert definition.vcs.type is VcsType.GIT
    by_id = {descriptor.id: descriptor for descriptor in definition.dependencies}
    assert by_id[REQUESTS].dependencies == (URLLIB3,)
    assert by_id[URLLIB3].is_dynamically_linked
    assert by_id[PYTEST].is_excluded


def test_definition_blank_and_null_text_is_empty() -> None:
    definition = load_definition(
        '{"name": "  demo ", "vcsUrl": null, "dependencies": [{"id": "PyPI::a:1", "vcsUrl": " "}]}'
    )

    assert definition.name == "demo"
    assert definition.vcs.url == ""
    assert definition.dependencies[0].vcs_url == ""


def test_definition_with_bad_identifier_is_rejected() -> None:
    with pytest.raises(ValidationError, match="four"):
        load_definition('{"name": "demo", "dependencies": [{"id": "a:b"}]}')
