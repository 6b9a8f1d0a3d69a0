from __future__ import annotations

import hashlib
from pathlib import Path  # noqa: TC003

import httpx
import pytest

from provgraph.adapters.http_download import HttpDownloader, download_key
from provgraph.config.download import DownloadConfig, RetryPolicy
from provgraph.domain.model import Hash, RemoteArtifact
from provgraph.domain.ports import DownloadError, Downloader

URL = "https://files.example.com/pkg/lib-1.0.0.tar.gz"
CONTENT = b"archive bytes" * 100
NO_RETRIES = DownloadConfig(retry=RetryPolicy(total=0))


def _artifact(content: bytes = CONTENT) -> RemoteArtifact:
    return RemoteArtifact(url=URL, hash=Hash.create(hashlib.sha256(content).hexdigest()))


class _Server:
    """Counts requests and answers them with a fixed response."""

    def __init__(self, status_code: int = 200, content: bytes = CONTENT) -> None:
        self.status_code = status_code
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content)


def test_download_key_keeps_the_file_name() -> None:
    key = download_key(URL)

    assert key.endswith("/lib-1.0.0.tar.gz")
    assert key.split("/")[0] == key.split("/")[1][:2]
    assert download_key("https://example.com/").endswith("/artifact")
    assert download_key(URL) != download_key(URL + "?mirror=2")


def test_downloader_implements_the_port(tmp_path: Path) -> None:
    with HttpDownloader(tmp_path) as downloader:
        assert isinstance(downloader, Downloader)


def test_fetch_stores_the_response_body(tmp_path: Path) -> None:
    server = _Server()

    with HttpDownloader(tmp_path, transport=httpx.MockTransport(server)) as downloader:
        path = downloader.fetch(_artifact())

    assert path.read_bytes() == CONTENT
    assert path.is_relative_to(tmp_path)
    assert server.requests[0].headers["User-Agent"] == "provgraph"


def test_verified_download_is_reused(tmp_path: Path) -> None:
    server = _Server()

    with HttpDownloader(tmp_path, transport=httpx.MockTransport(server)) as downloader:
        first = downloader.fetch(_artifact())
        second = downloader.fetch(_artifact())

    assert first == second
    assert len(server.requests) == 1


def test_download_not_matching_its_hash_is_fetched_again(tmp_path: Path) -> None:
    server = _Server(content=b"stale")

    with HttpDownloader(tmp_path, transport=httpx.MockTransport(server)) as downloader:
        downloader.fetch(_artifact())
        server.content = CONTENT
        path = downloader.fetch(_artifact())

    assert path.read_bytes() == CONTENT
    assert len(server.requests) == 2


def test_http_errors_are_download_errors(tmp_path: Path) -> None:
    server = _Server(status_code=404)

    with (
        HttpDownloader(
            tmp_path, config=NO_RETRIES, transport=httpx.MockTransport(server)
        ) as downloader,
        pytest.raises(DownloadError, match="status 404"),
    ):
        downloader.fetch(_artifact())


def test_transient_failures_are_retried(tmp_path: Path) -> None:
    responses = iter([httpx.Response(503), httpx.Response(200, content=CONTENT)])
    config = DownloadConfig(retry=RetryPolicy(total=2, backoff_factor=0.0))

    def handler(_: httpx.Request) -> httpx.Response:
        return next(responses)

    with HttpDownloader(tmp_path, config=config, transport=httpx.MockTransport(handler)) as d:
        path = d.fetch(_artifact())

    assert path.read_bytes() == CONTENT


def test_connection_errors_are_download_errors(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with (
        HttpDownloader(
            tmp_path, config=NO_RETRIES, transport=httpx.MockTransport(handler)
        ) as downloader,
        pytest.raises(DownloadError, match="refused"),
    ):
        downloader.fetch(_artifact())


def test_artifact_without_url_is_rejected(tmp_path: Path) -> None:
    with HttpDownloader(tmp_path) as downloader, pytest.raises(DownloadError):
        downloader.fetch(RemoteArtifact(url=""))
