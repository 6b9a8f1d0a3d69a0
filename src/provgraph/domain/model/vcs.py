"""Version control information and its canonical form."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Final
from urllib.parse import urlsplit, urlunsplit

from provgraph.domain.model.enums import VcsType

_HOST_ALIASES: Final[dict[str, str]] = {
    "www.github.com": "github.com",
    "ssh.github.com": "github.com",
    "www.gitlab.com": "gitlab.com",
    "www.bitbucket.org": "bitbucket.org",
}
_HTTPS_ONLY_HOSTS: Final[frozenset[str]] = frozenset({"github.com", "gitlab.com", "bitbucket.org"})
_UPGRADABLE_SCHEMES: Final[frozenset[str]] = frozenset({"git", "ssh", "http", "https"})
_SCP_LIKE = re.compile(r"^(?:[\w.~-]+@)?(?P<host>[\w.-]+\.[\w-]+):(?!//)(?P<path>[^\\]*)$")
_VCS_SUFFIX: Final[str] = ".git"


def normalize_vcs_url(url: str) -> str:
    """Return the canonical spelling of a repository URL.

    Two spellings of the same repository normalize to the same string, and
    normalizing an already normalized URL is a no-op.
    """

    value = url.strip()
    if not value:
        return ""

    if value.lower().startswith("git+"):
        value = value[len("git+") :]

    scp_match = _SCP_LIKE.match(value)
    if scp_match and "://" not in value:
        value = f"ssh://{scp_match['host']}/{scp_match['path'].lstrip('/')}"

    if "://" not in value:
        return _strip_repository_suffixes(value)

    parts = urlsplit(value)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    host = _HOST_ALIASES.get(host, host)

    if scheme == "git+ssh":
        scheme = "ssh"
    if host in _HTTPS_ONLY_HOSTS and scheme in _UPGRADABLE_SCHEMES:
        scheme = "https"

    try:
        port = parts.port
    except ValueError:
        port = None

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and host not in _HTTPS_ONLY_HOSTS:
        netloc = f"{netloc}:{port}"

    path = _strip_repository_suffixes(parts.path)
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def _strip_repository_suffixes(path: str) -> str:
    while True:
        stripped = path.rstrip("/")
        if stripped.endswith(_VCS_SUFFIX):
            stripped = stripped[: -len(_VCS_SUFFIX)]
        if stripped == path:
            return path
        path = stripped


def normalize_vcs_path(path: str) -> str:
    """Return a relative POSIX path without redundant separators (``""`` for the root)."""

    value = path.strip().replace("\\", "/").strip("/")
    if not value:
        return ""
    normalized = posixpath.normpath(value)
    return "" if normalized == "." else normalized


@dataclass(frozen=True, slots=True)
class VcsInfo:
    """Where the sources of a package live in version control."""

    type: VcsType = VcsType.UNKNOWN
    url: str = ""
    revision: str = ""
    path: str = ""

    @property
    def is_empty(self) -> bool:
        return self.type is VcsType.UNKNOWN and not (self.url or self.revision or self.path)

    def normalize(self) -> VcsInfo:
        return VcsInfo(
            type=self.type,
            url=normalize_vcs_url(self.url),
            revision=self.revision.strip(),
            path=normalize_vcs_path(self.path),
        )


EMPTY_VCS_INFO: Final[VcsInfo] = VcsInfo()
