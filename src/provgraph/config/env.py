"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, TypeVar

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable


T = TypeVar("T")


def optional_env(name: str, parse: Callable[[str], T], default: T) -> T:
    """Return ``parse`` applied to the variable ``name``, or ``default`` if unset/blank."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return parse(value.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from exc


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise ValueError(f"expected a positive integer, got {number}")
    return number


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise ValueError(f"expected a non-negative integer, got {number}")
    return number


def positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise ValueError(f"expected a positive number, got {number}")
    return number
