"""Provenance resolution results persisted as JSON documents in a file storage."""

from __future__ import annotations

import io
from logging import getLogger
from typing import TYPE_CHECKING, Final, TypeVar

from provgraph.adapters.serialization import (
    dump_nested_provenance,
    dump_package_provenance,
    load_nested_provenance,
    load_package_provenance,
)
from provgraph.domain.model import ValidationError, fingerprint
from provgraph.domain.ports import KeyNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

    from provgraph.domain.model import (
        Identifier,
        NestedProvenance,
        PackageProvenance,
        RepositoryProvenance,
    )
    from provgraph.domain.ports import FileStorage

log = getLogger(__name__)
T = TypeVar("T")

PACKAGE_PROVENANCE_PREFIX: Final[str] = "package-provenance"
NESTED_PROVENANCE_PREFIX: Final[str] = "nested-provenance"


def package_provenance_key(identifier: Identifier, request: str) -> str:
    return f"{PACKAGE_PROVENANCE_PREFIX}/{identifier.to_path()}/{request}.json"


def nested_provenance_key(root: RepositoryProvenance) -> str:
    vcs_type = root.vcs_type.value or "unknown"
    return f"{NESTED_PROVENANCE_PREFIX}/{vcs_type}/{fingerprint(root.root())}.json"


class ProvenanceResultCache:
    """A :class:`~provgraph.domain.ports.ProvenanceCache` on top of a file storage.

    Only successful results are stored. Entries that cannot be read or decoded
    are treated as missing and get overwritten by the next successful resolution.
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    def get_package_provenance(
        self, identifier: Identifier, request: str
    ) -> PackageProvenance | None:
        result = self._load(package_provenance_key(identifier, request), load_package_provenance)
        if result is not None and result.id != identifier:
            log.warning("Ignoring cached provenance of '%s' stored for '%s'", identifier, result.id)
            return None
        return result

    def put_package_provenance(self, request: str, result: PackageProvenance) -> None:
        if not result.is_resolved:
            return
        key = package_provenance_key(result.id, request)
        self.storage.write(key, io.BytesIO(dump_package_provenance(result)))

    def get_nested_provenance(self, root: RepositoryProvenance) -> NestedProvenance | None:
        result = self._load(nested_provenance_key(root), load_nested_provenance)
        if result is not None and result.root != root.root():
            log.warning("Ignoring cached nested provenance stored for '%s'", result.root.url)
            return None
        return result

    def put_nested_provenance(self, result: NestedProvenance) -> None:
        if not result.is_complete:
            return
        key = nested_provenance_key(result.root)
        self.storage.write(key, io.BytesIO(dump_nested_provenance(result)))

    def _load(self, key: str, decode: Callable[[bytes], T]) -> T | None:
        if not self.storage.exists(key):
            return None
        try:
            with self.storage.read(key) as stream:
                data = stream.read()
        except KeyNotFoundError:
            return None
        except (OSError, EOFError) as exc:
            log.warning("Ignoring unreadable cache entry '%s': %s", key, exc)
            return None
        try:
            return decode(data)
        except ValidationError as exc:
            log.warning("Ignoring undecodable cache entry '%s': %s", key, exc)
            return None
