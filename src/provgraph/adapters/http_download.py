"""Download source artifacts over HTTP into a local directory."""

from __future__ import annotations

import hashlib
import tempfile
from logging import getLogger
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Final
from urllib.parse import unquote, urlsplit

import httpx
from httpx_retries import Retry, RetryTransport

from provgraph.adapters.local_storage import LocalFileStorage
from provgraph.config.download import DownloadConfig, RetryPolicy
from provgraph.domain.ports import DownloadError, StorageError

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from provgraph.domain.model import RemoteArtifact

log = getLogger(__name__)

_SPOOL_SIZE: Final[int] = 8 * 1024 * 1024
_FALLBACK_NAME: Final[str] = "artifact"


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=("GET", "HEAD"),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
    )


def download_key(url: str) -> str:
    """Return the storage key of ``url``: a digest of the URL plus its file name."""

    digest = hashlib.sha1(url.encode(), usedforsecurity=False).hexdigest()
    name = PurePosixPath(unquote(urlsplit(url).path)).name
    if not name or name in {".", ".."}:
        name = _FALLBACK_NAME
    return f"{digest[:2]}/{digest}/{name}"


class HttpDownloader:
    """A :class:`~provgraph.domain.ports.Downloader` keeping downloads in ``directory``.

    An artifact that was downloaded before is reused as long as it still
    matches its expected hash; otherwise it is downloaded again.
    """

    def __init__(
        self,
        directory: Path,
        *,
        config: DownloadConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config or DownloadConfig()
        self.storage = LocalFileStorage(directory)
        self._client = httpx.Client(
            timeout=self.config.timeout_seconds,
            follow_redirects=self.config.follow_redirects,
            headers={"User-Agent": self.config.user_agent},
            transport=RetryTransport(
                transport=transport or httpx.HTTPTransport(),
                retry=build_retry(self.config.retry),
            ),
        )

    def __enter__(self) -> HttpDownloader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch(self, artifact: RemoteArtifact) -> Path:
        if artifact.is_empty:
            raise DownloadError("Cannot download an artifact without URL")

        key = download_key(artifact.url)
        try:
            path = self.storage.path_of(key)
            if self.storage.exists(key) and self._is_reusable(artifact, path):
                log.debug("Reusing download of '%s'", artifact.url)
                return path
            self._download(artifact.url, key)
        except StorageError as exc:
            raise DownloadError(f"Cannot store download of '{artifact.url}': {exc}") from exc
        return path

    def _is_reusable(self, artifact: RemoteArtifact, path: Path) -> bool:
        return not artifact.hash.is_verifiable or artifact.hash.verify(path)

    def _download(self, url: str, key: str) -> None:
        log.info("Downloading '%s'", url)
        with tempfile.SpooledTemporaryFile(max_size=_SPOOL_SIZE) as buffer:
            try:
                with self._client.stream("GET", url) as response:
                    response.raise_for_status()
                    for chunk in response.iter_bytes():
                        buffer.write(chunk)
            except httpx.HTTPStatusError as exc:
                raise DownloadError(
                    f"Download of '{url}' failed with status {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                raise DownloadError(f"Download of '{url}' failed: {exc}") from exc
            buffer.seek(0)
            self.storage.write(key, buffer)  # type: ignore[arg-type]
