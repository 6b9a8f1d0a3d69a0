"""Encode and decode pipeline documents as JSON."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, TypeVar

import pydantic

from provgraph.domain.model import ValidationError

from .schema import (
    DefinitionFileDocument,
    DocumentModel,
    NestedProvenanceDocument,
    PackageProvenanceDocument,
    PipelineResultDocument,
)
from .translator import (
    definition_from_document,
    nested_provenance_from_document,
    nested_provenance_to_document,
    package_provenance_from_document,
    package_provenance_to_document,
    result_from_document,
    result_to_document,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from provgraph.domain.assembly import ProjectDefinition
    from provgraph.domain.model import NestedProvenance, PackageProvenance, PipelineResult

log = getLogger(__name__)

_INDENT = 2


def _encode(document: DocumentModel, *, indent: int | None = _INDENT) -> bytes:
    return document.model_dump_json(
        by_alias=True, exclude_none=True, exclude_defaults=True, indent=indent
    ).encode()


D = TypeVar("D", bound="DocumentModel")
T = TypeVar("T")


def _decode(
    data: bytes | str, model: type[D], translate: Callable[[D], T]
) -> T:
    try:
        document = model.model_validate_json(data)
    except pydantic.ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in exc.errors()
        ]
        raise ValidationError(problems) from exc
    try:
        return translate(document)
    except ValidationError:
        raise
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def dump_result(result: PipelineResult) -> bytes:
    """Serialize ``result`` as a JSON document with camelCase keys."""
    return _encode(result_to_document(result))


def load_result(data: bytes | str) -> PipelineResult:
    """Parse a document written by :func:`dump_result`.

    Raises :class:`ValidationError` if the document is malformed.
    """
    return _decode(data, PipelineResultDocument, result_from_document)


def write_result(result: PipelineResult, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dump_result(result))
    log.info("Wrote result to '%s'", path)


def read_result(path: Path) -> PipelineResult:
    return load_result(path.read_bytes())


def dump_package_provenance(result: PackageProvenance) -> bytes:
    return _encode(package_provenance_to_document(result), indent=None)


def load_package_provenance(data: bytes | str) -> PackageProvenance:
    return _decode(data, PackageProvenanceDocument, package_provenance_from_document)


def dump_nested_provenance(result: NestedProvenance) -> bytes:
    return _encode(nested_provenance_to_document(result), indent=None)


def load_nested_provenance(data: bytes | str) -> NestedProvenance:
    return _decode(data, NestedProvenanceDocument, nested_provenance_from_document)


def load_definition(data: bytes | str, *, definition_file_path: str = "") -> ProjectDefinition:
    """Parse a definition file; every problem found is reported in one :class:`ValidationError`."""

    return _decode(
        data,
        DefinitionFileDocument,
        lambda document: definition_from_document(
            document, definition_file_path=definition_file_path
        ),
    )


def read_definition_file(path: Path) -> ProjectDefinition:
    return load_definition(path.read_bytes(), definition_file_path=path.as_posix())
