from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from provgraph.domain.model.enums import Severity


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, kw_only=True, slots=True)
class Issue:
    """A problem that was recorded instead of raised."""

    message: str
    source: str
    severity: Severity = Severity.ERROR
    timestamp: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))

    def __str__(self) -> str:
        return f"[{self.severity}] {self.source}: {self.message}"
