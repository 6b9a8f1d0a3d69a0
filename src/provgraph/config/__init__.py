"""Application configuration helpers."""

from __future__ import annotations

from .download import DownloadConfig, RetryPolicy, get_download_config
from .env import optional_env
from .errors import ConfigurationError
from .resolver import ResolverConfig, get_resolver_config
from .storage import StorageConfig, get_storage_config

__all__ = [
    "ConfigurationError",
    "DownloadConfig",
    "ResolverConfig",
    "RetryPolicy",
    "StorageConfig",
    "get_download_config",
    "get_resolver_config",
    "get_storage_config",
    "optional_env",
]
