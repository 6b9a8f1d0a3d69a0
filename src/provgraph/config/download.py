"""Configuration types for the HTTP source artifact downloader."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

import httpx

from .env import non_negative_int, optional_env, positive_float

DEFAULT_USER_AGENT: Final[str] = "provgraph"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )


@dataclass(slots=True, frozen=True)
class DownloadConfig:
    timeout_seconds: float = 60.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    user_agent: str = DEFAULT_USER_AGENT
    follow_redirects: bool = True


def get_download_config() -> DownloadConfig:
    return DownloadConfig(
        timeout_seconds=optional_env("PROVGRAPH_DOWNLOAD_TIMEOUT", positive_float, 60.0),
        retry=RetryPolicy(total=optional_env("PROVGRAPH_DOWNLOAD_RETRIES", non_negative_int, 3)),
    )
