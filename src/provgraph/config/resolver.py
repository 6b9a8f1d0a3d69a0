"""Provenance resolution configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from provgraph.domain.model import SourceCodeOrigin

from .env import non_negative_int, optional_env, positive_float, positive_int

DEFAULT_MAX_WORKERS: Final[int] = 8
DEFAULT_TIMEOUT_SECONDS: Final[float] = 300.0
# Deep enough for real submodule trees; ends pathological self-embedding checkouts.
DEFAULT_MAX_NESTED_DEPTH: Final[int] = 8
DEFAULT_SOURCE_CODE_ORIGINS: Final[tuple[SourceCodeOrigin, ...]] = (
    SourceCodeOrigin.VCS,
    SourceCodeOrigin.ARTIFACT,
)


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    max_workers: int = DEFAULT_MAX_WORKERS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_nested_depth: int = DEFAULT_MAX_NESTED_DEPTH
    source_code_origins: tuple[SourceCodeOrigin, ...] = DEFAULT_SOURCE_CODE_ORIGINS

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.max_nested_depth < 0:
            raise ValueError("max_nested_depth must not be negative")
        if not self.source_code_origins:
            raise ValueError("At least one source code origin is required")


def _parse_origins(value: str) -> tuple[SourceCodeOrigin, ...]:
    origins = tuple(
        SourceCodeOrigin(part.strip().upper()) for part in value.split(",") if part.strip()
    )
    if not origins:
        raise ValueError("no source code origins given")
    return tuple(dict.fromkeys(origins))


def get_resolver_config() -> ResolverConfig:
    return ResolverConfig(
        max_workers=optional_env("PROVGRAPH_MAX_WORKERS", positive_int, DEFAULT_MAX_WORKERS),
        timeout_seconds=optional_env(
            "PROVGRAPH_RESOLUTION_TIMEOUT", positive_float, DEFAULT_TIMEOUT_SECONDS
        ),
        max_nested_depth=optional_env(
            "PROVGRAPH_MAX_NESTED_DEPTH", non_negative_int, DEFAULT_MAX_NESTED_DEPTH
        ),
        source_code_origins=optional_env(
            "PROVGRAPH_SOURCE_CODE_ORIGINS", _parse_origins, DEFAULT_SOURCE_CODE_ORIGINS
        ),
    )
