"""File storage backed by a directory of the local file system.

Writes never expose partially written data: content is written to a private
temporary file next to its destination and published with ``os.replace``,
which is atomic on POSIX file systems. Readers therefore always see either
the complete old or the complete new content of a key. No locks are taken, so
operations on different keys never contend with each other.
"""

from __future__ import annotations

import gzip
import os
import shutil
import tempfile
import zlib
from contextlib import contextmanager
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from provgraph.domain.ports.storage import (
    KeyNotFoundError,
    PathViolationError,
    StorageError,
    StorageIOError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

log = getLogger(__name__)


class LocalFileStorage:
    """A :class:`~provgraph.domain.ports.FileStorage` rooted at ``directory``."""

    def __init__(self, directory: Path) -> None:
        root = Path(directory).expanduser()
        if root.exists() and not root.is_dir():
            raise StorageError(f"Storage root '{root}' exists but is not a directory")
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create storage root '{root}': {exc}") from exc
        self.directory = root.resolve()

    def transform_path(self, key: str) -> str:
        """Map a logical key to the name used on disk (identity by default)."""
        return key

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def path_of(self, key: str) -> Path:
        """Return where the data of ``key`` is kept on disk."""
        return self._resolve(key)

    def read(self, key: str) -> BinaryIO:
        path = self._resolve(key)
        try:
            return self._open_for_reading(path)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise KeyNotFoundError(f"No data stored for key '{key}'") from exc
        except OSError as exc:
            raise StorageIOError(f"Cannot read key '{key}': {exc}") from exc

    def write(self, key: str, stream: BinaryIO) -> None:
        with stream:
            path = self._resolve(key)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                self._publish(path, lambda handle: self._copy_into(stream, handle))
            except OSError as exc:
                raise StorageIOError(f"Cannot write key '{key}': {exc}") from exc
        log.debug("Stored key '%s' at '%s'", key, path)

    def _resolve(self, key: str) -> Path:
        """Return the location of ``key``, refusing anything outside of the root.

        The lexical check runs first so that keys like ``../../etc/passwd`` are
        rejected without touching the file system; the second check catches
        symbolic links inside the root that point elsewhere.
        """

        if not key or "\0" in key:
            raise PathViolationError(f"Invalid storage key {key!r}")

        physical = self.transform_path(key)
        lexical = Path(os.path.normpath(self.directory / physical))
        if not lexical.is_relative_to(self.directory) or lexical == self.directory:
            raise PathViolationError(f"Path '{key}' is not in directory '{self.directory}'")

        resolved = lexical.resolve()
        if not resolved.is_relative_to(self.directory) or resolved == self.directory:
            raise PathViolationError(f"Path '{key}' is not in directory '{self.directory}'")
        return lexical

    def _open_for_reading(self, path: Path) -> BinaryIO:
        return path.open("rb")

    def _copy_into(self, source: BinaryIO, target: BinaryIO) -> None:
        shutil.copyfileobj(source, target)

    def _publish(self, path: Path, produce: Callable[[BinaryIO], None]) -> None:
        handle = tempfile.NamedTemporaryFile(  # noqa: SIM115
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        )
        temporary = Path(handle.name)
        try:
            with handle:
                produce(handle)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temporary, path)
        except BaseException:
            temporary.unlink(missing_ok=True)
            raise


class _CheckedGzipFile(gzip.GzipFile):
    """Reports corrupt or truncated compressed data as :class:`StorageIOError`."""

    def read(self, size: int | None = -1) -> bytes:
        with _decompression_errors(self.name):
            return super().read(size)

    def read1(self, size: int = -1) -> bytes:
        with _decompression_errors(self.name):
            return super().read1(size)

    def peek(self, n: int) -> bytes:
        with _decompression_errors(self.name):
            return super().peek(n)

    def readline(self, size: int | None = -1) -> bytes:
        with _decompression_errors(self.name):
            return super().readline(size)


@contextmanager
def _decompression_errors(name: str) -> Iterator[None]:
    try:
        yield
    except (OSError, EOFError, zlib.error) as exc:
        raise StorageIOError(f"Cannot decompress '{name}': {exc}") from exc


class CompressedFileStorage(LocalFileStorage):
    """Stores gzip-compressed data under the key plus a ``.gz`` suffix."""

    SUFFIX = ".gz"

    def transform_path(self, key: str) -> str:
        return f"{key}{self.SUFFIX}"

    def _open_for_reading(self, path: Path) -> BinaryIO:
        return _CheckedGzipFile(path, "rb")  # type: ignore[return-value]

    def _copy_into(self, source: BinaryIO, target: BinaryIO) -> None:
        with gzip.GzipFile(fileobj=target, mode="wb", mtime=0) as compressed:
            shutil.copyfileobj(source, compressed)
