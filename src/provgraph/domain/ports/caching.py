"""Port for reusing earlier provenance resolution results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from provgraph.domain.model import (
        Identifier,
        NestedProvenance,
        PackageProvenance,
        RepositoryProvenance,
    )


@runtime_checkable
class ProvenanceCache(Protocol):
    """Stores successful resolutions keyed by what was asked for.

    ``request`` is an opaque fingerprint of the resolution input; callers only
    cache results for inputs that always resolve to the same provenance.
    """

    def get_package_provenance(
        self, identifier: Identifier, request: str
    ) -> PackageProvenance | None: ...

    def put_package_provenance(self, request: str, result: PackageProvenance) -> None: ...

    def get_nested_provenance(self, root: RepositoryProvenance) -> NestedProvenance | None: ...

    def put_nested_provenance(self, result: NestedProvenance) -> None: ...


__all__ = ["ProvenanceCache"]
