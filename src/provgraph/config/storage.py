"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "provgraph"
ARTIFACTS_DIRNAME: Final[str] = "artifacts"
RESULTS_DIRNAME: Final[str] = "provenance"
DOWNLOADS_DIRNAME: Final[str] = "downloads"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    compress: bool = False

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def artifacts_dir(self, *, ensure: bool = True) -> Path:
        """Root of the artifact store used by later pipeline stages."""
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / ARTIFACTS_DIRNAME

    def results_dir(self, *, ensure: bool = True) -> Path:
        """Root of the store that caches provenance resolution results."""
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / RESULTS_DIRNAME

    def downloads_dir(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / DOWNLOADS_DIRNAME


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("PROVGRAPH_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    compress = os.getenv("PROVGRAPH_COMPRESS_STORAGE", "").strip().lower() in {"1", "true", "yes"}
    return StorageConfig(data_dir=data_dir, compress=compress)
