"""Port and error taxonomy for key-to-blob storage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import BinaryIO


class StorageError(RuntimeError):
    """Base class of all storage failures."""


class PathViolationError(StorageError, ValueError):
    """Raised when a key resolves outside of the storage root.

    This is an input error; it is never retried or corrected.
    """


class KeyNotFoundError(StorageError, LookupError):
    """Raised when reading a key that has no data associated."""


class StorageIOError(StorageError, OSError):
    """Raised for I/O failures such as a full disk or missing permissions."""


@runtime_checkable
class FileStorage(Protocol):
    """Associates string keys with binary data."""

    def exists(self, key: str) -> bool: ...

    def read(self, key: str) -> BinaryIO:
        """Return the data for ``key``; the caller must close the stream."""
        ...

    def write(self, key: str, stream: BinaryIO) -> None:
        """Replace the data for ``key`` with the content of ``stream`` and close it."""
        ...


__all__ = [
    "FileStorage",
    "KeyNotFoundError",
    "PathViolationError",
    "StorageError",
    "StorageIOError",
]
