"""Port for collecting issues while work is in progress."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from provgraph.domain.model import Identifier, Issue


@runtime_checkable
class IssueSink(Protocol):
    def add(self, identifier: Identifier, issue: Issue) -> None: ...


@dataclass(slots=True)
class CollectingIssueSink:
    """Thread-safe sink that keeps every issue in memory."""

    _issues: dict[Identifier, list[Issue]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, identifier: Identifier, issue: Issue) -> None:
        with self._lock:
            self._issues.setdefault(identifier, []).append(issue)

    def issues(self) -> dict[Identifier, tuple[Issue, ...]]:
        with self._lock:
            return {identifier: tuple(issues) for identifier, issues in self._issues.items()}


__all__ = ["CollectingIssueSink", "IssueSink"]
