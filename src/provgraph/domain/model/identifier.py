"""Canonical package identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final
from urllib.parse import quote

from provgraph.domain.model.errors import ValidationError

_SEPARATOR: Final[str] = ":"
UNMANAGED_TYPE: Final[str] = "Unmanaged"


@dataclass(frozen=True, order=True, slots=True)
class Identifier:
    """Composite key of a package or project.

    The identifier is the only identity of a package across the whole model:
    two identifiers with equal components are interchangeable as map keys.
    """

    type: str
    namespace: str
    name: str
    version: str

    def __post_init__(self) -> None:
        # The version is the last component, so it may contain the separator itself.
        for component in (self.type, self.namespace, self.name):
            if _SEPARATOR in component:
                raise ValueError(
                    f"Identifier components must not contain '{_SEPARATOR}': {component!r}"
                )

    @classmethod
    def parse(cls, coordinates: str) -> Identifier:
        """Parse ``type:namespace:name:version`` coordinates.

        Everything after the third separator is the version, so versions like
        the Debian ``1:2.3-1`` survive a round trip.
        """

        parts = coordinates.split(_SEPARATOR, 3)
        if len(parts) != 4:
            raise ValidationError(
                f"Identifier '{coordinates}' must have four ':'-separated components"
            )
        return cls(*(part.strip() for part in parts))

    @classmethod
    def for_unmanaged(cls, name: str) -> Identifier:
        return cls(type=UNMANAGED_TYPE, namespace="", name=name, version="")

    @property
    def is_complete(self) -> bool:
        """Whether the required components (type and name) are present."""
        return bool(self.type.strip()) and bool(self.name.strip())

    def to_coordinates(self) -> str:
        return _SEPARATOR.join((self.type, self.namespace, self.name, self.version))

    def to_path(self) -> str:
        """Return a relative, storage-friendly path, using ``unknown`` for blanks."""

        return "/".join(
            quote(component, safe="") or "unknown"
            for component in (self.type, self.namespace, self.name, self.version)
        )

    def __str__(self) -> str:
        return self.to_coordinates()
