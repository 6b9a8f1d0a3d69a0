"""Public interface for the JSON document adapter."""

from __future__ import annotations

from .codec import (
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
from .schema import DefinitionFileDocument, PipelineResultDocument

__all__ = [
    "DefinitionFileDocument",
    "PipelineResultDocument",
    "dump_nested_provenance",
    "dump_package_provenance",
    "dump_result",
    "load_definition",
    "load_nested_provenance",
    "load_package_provenance",
    "load_result",
    "read_definition_file",
    "read_result",
    "write_result",
]
