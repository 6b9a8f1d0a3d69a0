"""Domain error definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ValidationError(ValueError):
    """Raised when descriptors or identifiers are malformed.

    Carries every problem that was found so that a caller can report them in
    one go instead of fixing inputs one error at a time.
    """

    def __init__(self, problems: str | Sequence[str]) -> None:
        self.problems: tuple[str, ...] = (
            (problems,) if isinstance(problems, str) else tuple(problems)
        )
        super().__init__("; ".join(self.problems))
