"""Remote artifacts and their checksums."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from provgraph.domain.model.enums import HashAlgorithm

if TYPE_CHECKING:
    from pathlib import Path

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class Hash:
    value: str = ""
    algorithm: HashAlgorithm = HashAlgorithm.NONE

    NONE: ClassVar[Hash]

    @classmethod
    def create(cls, value: str) -> Hash:
        """Build a hash from a hex digest, inferring the algorithm from its length."""

        digest = value.strip().lower()
        return cls(value=digest, algorithm=HashAlgorithm.for_digest(digest))

    @property
    def is_verifiable(self) -> bool:
        return bool(self.value) and self.algorithm.hashlib_name is not None

    def verify(self, path: Path) -> bool:
        name = self.algorithm.hashlib_name
        if not self.value or name is None:
            raise ValueError(f"Cannot verify a hash of algorithm '{self.algorithm}'")

        digest = hashlib.new(name)
        with path.open("rb") as handle:
            while chunk := handle.read(_CHUNK_SIZE):
                digest.update(chunk)
        return digest.hexdigest() == self.value.lower()


Hash.NONE = Hash()


@dataclass(frozen=True, slots=True)
class RemoteArtifact:
    url: str = ""
    hash: Hash = Hash.NONE

    @property
    def is_empty(self) -> bool:
        return not self.url.strip()
