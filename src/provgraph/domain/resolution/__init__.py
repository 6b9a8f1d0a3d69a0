"""Provenance resolution for projects, packages and nested repositories.

Resolution runs in two steps: every identifier is resolved on its own to a
repository or source artifact, then each distinct repository is checked out
once to discover the repositories nested in it.
"""

from __future__ import annotations

from .nested_provenance import NestedProvenanceResolver, find_nested_candidates
from .package_provenance import (
    PackageProvenanceResolver,
    is_fixed_revision,
    request_fingerprint,
    revision_candidates,
)
from .runner import ProvenanceResolutionRunner, ResolutionTarget, targets_of
from .workers import WorkerPool

__all__ = [
    "NestedProvenanceResolver",
    "PackageProvenanceResolver",
    "ProvenanceResolutionRunner",
    "ResolutionTarget",
    "WorkerPool",
    "find_nested_candidates",
    "is_fixed_revision",
    "request_fingerprint",
    "revision_candidates",
    "targets_of",
]
